"""This module contains schemas used to validate objects.

Schemas conform to the JSON Schema specification as defined at
https://json-schema.org/
"""
from typing import Any, Dict


def _check_not_both_fields_present(field1: str, field2: str):
    return {
        'oneOf': [{
            'required': [field1],
            'not': {
                'required': [field2]
            }
        }, {
            'required': [field2],
            'not': {
                'required': [field1]
            }
        }, {
            'not': {
                'anyOf': [{
                    'required': [field1]
                }, {
                    'required': [field2]
                }]
            }
        }]
    }


_STRING_LIST_SCHEMA = {
    'type': 'array',
    'items': {
        'type': 'string',
        'minLength': 1,
    },
}


def get_source_server_schema() -> Dict[str, Any]:
    return {
        '$schema': 'http://json-schema.org/draft-07/schema#',
        'type': 'object',
        'required': [],
        'additionalProperties': False,
        'properties': {
            'name': {
                'type': 'string',
            },
            'security_groups': _STRING_LIST_SCHEMA,
            'networks': _STRING_LIST_SCHEMA,
            'ports': _STRING_LIST_SCHEMA,
            'availability_zone': {
                'type': 'string',
            },
            'user_data': {
                'type': 'string',
            },
            'user_data_file': {
                'type': 'string',
                'minLength': 1,
            },
            'config_drive': {
                'type': 'boolean',
            },
            'instance_metadata': {
                'type': 'object',
                'additionalProperties': {
                    'type': 'string',
                },
            },
            'use_block_storage_volume': {
                'type': 'boolean',
            },
            'force_delete': {
                'type': 'boolean',
            },
            'ssh_keypair_name': {
                'type': 'string',
            },
            'state_poll_interval': {
                'type': 'number',
                'exclusiveMinimum': 0,
            },
            'state_timeout': {
                'type': 'number',
                'exclusiveMinimum': 0,
            },
        },
        **_check_not_both_fields_present('user_data', 'user_data_file'),
    }
