"""OpenStack (compute v2) implementation of the compute client."""
import base64
from typing import Any, Dict, Optional, Tuple, Type

from skybake import exceptions
from skybake import sky_logging
from skybake.adaptors import openstack
from skybake.provision import common
from skybake.provision import compute

logger = sky_logging.init_logger(__name__)


def server_attributes(request: common.CreateRequest) -> Dict[str, Any]:
    """Maps a create request to openstacksdk server attributes.

    Empty optional fields are left out so the service applies its defaults.
    """
    spec = request.server
    attrs: Dict[str, Any] = {
        'name': spec.name,
        'flavor_id': spec.flavor_ref,
        'has_config_drive': spec.config_drive,
    }
    if spec.image_ref:
        attrs['image_id'] = spec.image_ref
    if spec.security_groups:
        attrs['security_groups'] = [{
            'name': name
        } for name in spec.security_groups]
    if spec.networks:
        attrs['networks'] = [{
            'port': nic.port_id
        } if nic.is_port else {
            'uuid': nic.network_id
        } for nic in spec.networks]
    if spec.availability_zone:
        attrs['availability_zone'] = spec.availability_zone
    if spec.user_data:
        # The API expects base64 encoded user data.
        attrs['user_data'] = base64.b64encode(spec.user_data).decode('ascii')
    if spec.metadata:
        attrs['metadata'] = dict(spec.metadata)
    if request.block_devices:
        attrs['block_device_mapping'] = [
            dict(device) for device in request.block_devices
        ]
    if request.key_name:
        attrs['key_name'] = request.key_name
    return attrs


def _to_handle(server: Any,
               requested_zone: Optional[str] = None) -> common.ServerHandle:
    return common.ServerHandle(
        server_id=server.id,
        status=server.status or common.STATUS_BUILD,
        progress=server.progress or 0,
        availability_zone=server.availability_zone or requested_zone or None)


def _api_errors() -> Tuple[Type[Exception], ...]:
    """Errors of a compute call: SDK errors and keystoneauth1 errors."""
    return (openstack.exceptions().SDKException,
            openstack.keystoneauth_exceptions().ClientException)


def _api_error(message: str, e: Exception) -> exceptions.ComputeApiError:
    # keystoneauth1 HTTP errors carry the code as http_status.
    status_code = (getattr(e, 'status_code', None) or
                   getattr(e, 'http_status', None))
    return exceptions.ComputeApiError(f'{message}: {e}',
                                      status_code=status_code)


class OpenStackComputeClient(compute.ComputeClient):
    """Compute client backed by an openstacksdk connection."""

    def __init__(self, connection: Any) -> None:
        self._conn = connection

    @classmethod
    def from_cloud(cls,
                   cloud: Optional[str] = None,
                   **kwargs) -> 'OpenStackComputeClient':
        """Connects using a clouds.yaml entry, or OS_* env vars if None."""
        return cls(openstack.connection(cloud, **kwargs))

    def create_server(self,
                      request: common.CreateRequest) -> common.ServerHandle:
        try:
            server = self._conn.compute.create_server(
                **server_attributes(request))
        except _api_errors() as e:
            raise _api_error('Error launching source server', e) from e
        logger.debug(f'Created server {server.id} ({request.server.name}).')
        return _to_handle(server, request.availability_zone)

    def get_server(self, server_id: common.ServerId) -> common.ServerHandle:
        try:
            server = self._conn.compute.get_server(server_id)
        except openstack.exceptions().ResourceNotFound as e:
            raise exceptions.ServerNotFoundError(server_id) from e
        except _api_errors() as e:
            raise _api_error(f'Error getting server {server_id}', e) from e
        return _to_handle(server)

    def delete_server(self, server_id: common.ServerId) -> None:
        self._delete(server_id, force=False)

    def force_delete_server(self, server_id: common.ServerId) -> None:
        self._delete(server_id, force=True)

    def _delete(self, server_id: common.ServerId, force: bool) -> None:
        try:
            # A server that is already gone needs no deletion.
            self._conn.compute.delete_server(server_id,
                                             ignore_missing=True,
                                             force=force)
        except _api_errors() as e:
            raise _api_error(f'Error deleting server {server_id}', e) from e
