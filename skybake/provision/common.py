"""Common data structures for provisioning"""
import dataclasses
from typing import Any, Callable, Dict, Optional, Sequence, Tuple, Union

# -------------------- input data model -------------------- #

ServerId = str

STATUS_BUILD = 'BUILD'
STATUS_ACTIVE = 'ACTIVE'
STATUS_DELETED = 'DELETED'

# Statuses a server can be in while its deletion is still in progress.
DELETE_PENDING_STATUSES = ('ACTIVE', 'BUILD', 'REBUILD', 'SUSPENDED',
                           'SHUTOFF', 'STOPPED')


@dataclasses.dataclass(frozen=True)
class NetworkAttachment:
    """A NIC of the server: either a network to attach or a pre-created port.

    Exactly one of `network_id` and `port_id` is set; use the `network()` and
    `port()` constructors.
    """
    network_id: Optional[str] = None
    port_id: Optional[str] = None

    def __post_init__(self):
        if (self.network_id is None) == (self.port_id is None):
            raise ValueError('Exactly one of network_id and port_id must be '
                             f'set, got {self!r}.')

    @classmethod
    def network(cls, network_id: str) -> 'NetworkAttachment':
        return cls(network_id=network_id)

    @classmethod
    def port(cls, port_id: str) -> 'NetworkAttachment':
        return cls(port_id=port_id)

    @property
    def is_port(self) -> bool:
        return self.port_id is not None


@dataclasses.dataclass(frozen=True)
class ServerSpec:
    """The base options of a server create request."""
    name: str
    flavor_ref: str
    # Empty when the server boots from a volume.
    image_ref: str = ''
    security_groups: Tuple[str, ...] = ()
    networks: Tuple[NetworkAttachment, ...] = ()
    # Empty lets the provider pick the zone.
    availability_zone: str = ''
    user_data: bytes = b''
    config_drive: bool = False
    metadata: Dict[str, str] = dataclasses.field(default_factory=dict)
    # Set instead of `image_ref` when the server boots from a volume.
    boot_volume_id: Optional[str] = None

    def with_zone(self, availability_zone: str) -> 'ServerSpec':
        return dataclasses.replace(self, availability_zone=availability_zone)


@dataclasses.dataclass(frozen=True)
class ImageBoot:
    """The server boots from an image reference."""
    image_ref: str


@dataclasses.dataclass(frozen=True)
class VolumeBoot:
    """The server boots from a pre-created block storage volume."""
    volume_id: str
    boot_index: int = 0
    source_type: str = 'volume'
    destination_type: str = 'volume'

    def to_block_device(self) -> Dict[str, Any]:
        """Returns the block device mapping (v2) entry of the volume."""
        return {
            'boot_index': self.boot_index,
            'source_type': self.source_type,
            'destination_type': self.destination_type,
            'uuid': self.volume_id,
        }


BootSource = Union[ImageBoot, VolumeBoot]


@dataclasses.dataclass(frozen=True)
class CreateRequest:
    """The composite, fully decorated request of a server create call."""
    server: ServerSpec
    block_devices: Tuple[Dict[str, Any], ...] = ()
    key_name: str = ''

    @property
    def availability_zone(self) -> str:
        return self.server.availability_zone

    def with_zone(self, availability_zone: str) -> 'CreateRequest':
        """Returns a copy of the request targeting `availability_zone`."""
        return dataclasses.replace(
            self, server=self.server.with_zone(availability_zone))


# -------------------- output data model -------------------- #


@dataclasses.dataclass(frozen=True)
class ServerHandle:
    """A server as last reported by the compute service."""
    server_id: ServerId
    status: str
    # Build progress in percent, when the provider reports it.
    progress: int = 0
    availability_zone: Optional[str] = None


# A refresh returns (resource, status, progress) or raises on a failed query.
RefreshFn = Callable[[], Tuple[Any, str, int]]


@dataclasses.dataclass
class StateChangeConf:
    """Describes a wait for a resource to move from pending to target state."""
    # Statuses meaning "still transitioning, keep polling".
    pending: Sequence[str]
    # Statuses meaning the wait succeeded.
    target: Sequence[str]
    refresh: RefreshFn
    # Polls stop early when this owner is cancelled or halted. Teardown waits
    # leave it unset, since they run after the pipeline was interrupted.
    owner: Optional[Any] = None
    poll_interval: float = 2.0
    timeout: Optional[float] = 3600.0
    # Used in log and error messages only.
    description: str = 'resource'
