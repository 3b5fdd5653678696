"""Source server configuration.

The config of the provisioning step is a YAML mapping, e.g.

    name: packer-builder
    security_groups: [default, ssh]
    networks: [6c4d5c2a-...]
    ports: []
    availability_zone: az2
    user_data_file: ~/cloud-init.yaml
    instance_metadata:
      owner: image-factory
    use_block_storage_volume: true
    force_delete: false
    ssh_keypair_name: builder-key

All fields are optional. The YAML is validated against
`schemas.get_source_server_schema()` before use.
"""
import dataclasses
import os
from typing import Any, Dict, List, Optional

from skybake import exceptions
from skybake import sky_logging
from skybake.utils import common_utils
from skybake.utils import schemas
from skybake.utils import yaml_utils

logger = sky_logging.init_logger(__name__)

DEFAULT_SERVER_NAME = 'skybake-source'
# Matches the interval the compute API status is refreshed at on most
# OpenStack deployments; polling faster only adds API load.
DEFAULT_STATE_POLL_INTERVAL = 2.0
# Safety ceiling of a single state wait. Cancellation of the pipeline is the
# primary way out of a wait; this only bounds a wedged provider.
DEFAULT_STATE_TIMEOUT = 3600.0


@dataclasses.dataclass
class SourceServerConfig:
    """Configuration of the source server provisioning step."""
    name: str = DEFAULT_SERVER_NAME
    security_groups: List[str] = dataclasses.field(default_factory=list)
    networks: List[str] = dataclasses.field(default_factory=list)
    ports: List[str] = dataclasses.field(default_factory=list)
    # Preferred availability zone, tried first when it is a candidate.
    availability_zone: str = ''
    user_data: str = ''
    # When set, the file content overrides `user_data`.
    user_data_file: Optional[str] = None
    config_drive: bool = False
    instance_metadata: Dict[str, str] = dataclasses.field(default_factory=dict)
    use_block_storage_volume: bool = False
    force_delete: bool = False
    ssh_keypair_name: str = ''
    state_poll_interval: float = DEFAULT_STATE_POLL_INTERVAL
    state_timeout: float = DEFAULT_STATE_TIMEOUT

    @classmethod
    def from_dict(cls, config: Optional[Dict[str, Any]]) -> \
            'SourceServerConfig':
        """Builds a config from a mapping, validating it first.

        Raises:
            InvalidConfigError: if the mapping does not match the schema.
        """
        if config is None:
            config = {}
        common_utils.validate_schema(config,
                                     schemas.get_source_server_schema(),
                                     err_msg_prefix='Invalid source server '
                                     'config: ')
        fields = {k: v for k, v in config.items() if v is not None}
        return cls(**fields)

    def read_user_data(self) -> bytes:
        """Returns the user data bytes to pass to the new server.

        Raises:
            InvalidInputError: if `user_data_file` is set but cannot be read.
        """
        if not self.user_data_file:
            return self.user_data.encode('utf-8')
        path = os.path.expanduser(self.user_data_file)
        try:
            with open(path, 'rb') as f:
                return f.read()
        except OSError as e:
            raise exceptions.InvalidInputError(
                f'Error reading user data file: {e}') from e


def load_config(path: str) -> SourceServerConfig:
    """Loads and validates a source server config YAML file.

    Raises:
        InvalidConfigError: if the file is not valid YAML or does not match
          the schema.
    """
    try:
        raw = yaml_utils.read_yaml(path)
    except OSError as e:
        raise exceptions.InvalidConfigError(
            f'Failed to read config file {path!r}: {e}') from e
    except yaml_utils.yaml.YAMLError as e:
        raise exceptions.InvalidConfigError(
            f'Invalid YAML in config file {path!r}: {e}') from e
    if not isinstance(raw, dict):
        raise exceptions.InvalidConfigError(
            f'Config file {path!r} must contain a mapping, '
            f'got {type(raw).__name__}.')
    logger.debug(f'Loaded source server config from {path}: {raw}')
    return SourceServerConfig.from_dict(raw)
