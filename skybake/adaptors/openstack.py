"""OpenStack cloud adaptors"""

# pylint: disable=import-outside-toplevel
import logging
from typing import Optional

from skybake.adaptors import common


def _set_loggers():
    # keystoneauth logs every HTTP request at INFO; keep our output readable.
    for name in ('keystoneauth', 'openstack'):
        logging.getLogger(name).setLevel(logging.WARNING)


_IMPORT_ERROR_MESSAGE = ('Failed to import dependencies for OpenStack. '
                         'Try pip install "skybake[openstack]"')
openstack = common.LazyImport('openstack',
                              import_error_message=_IMPORT_ERROR_MESSAGE,
                              set_loggers=_set_loggers)
_LAZY_MODULES = (openstack,)


@common.load_lazy_modules(modules=_LAZY_MODULES)
def connection(cloud: Optional[str] = None, **kwargs):
    """Connects to an OpenStack cloud.

    Args:
        cloud: Name of the cloud in clouds.yaml. If None, the OS_* environment
          variables are used.
        **kwargs: Extra arguments forwarded to openstack.connect().
    """
    return openstack.connect(cloud=cloud, **kwargs)


@common.load_lazy_modules(modules=_LAZY_MODULES)
def exceptions():
    """OpenStack SDK exceptions."""
    from openstack import exceptions as os_exceptions
    return os_exceptions


@common.load_lazy_modules(modules=_LAZY_MODULES)
def keystoneauth_exceptions():
    """keystoneauth1 exceptions.

    The SDK lets transport and authentication failures (e.g. ConnectFailure,
    Unauthorized, EndpointNotFound) through as keystoneauth1 errors, which do
    not derive from openstack.exceptions.SDKException.
    """
    from keystoneauth1 import exceptions as ksa_exceptions
    return ksa_exceptions
