"""Composition of the server create request from optional extensions.

A create request starts from a `ServerSpec` and is extended by options.
Options are applied to a single builder in the fixed order of
`_OPTION_ORDER`, whatever order the caller lists them in, and each option
sees the effect of the options applied before it:

  1. BootFromVolumeOption: attaches the boot volume as block device 0.
  2. KeyPairOption: injects the named SSH key pair.
"""
import dataclasses
from typing import Any, Dict, List, Optional, Sequence, Union

from skybake import exceptions
from skybake import sky_logging
from skybake.provision import common

logger = sky_logging.init_logger(__name__)


@dataclasses.dataclass(frozen=True)
class BootFromVolumeOption:
    volume: common.VolumeBoot


@dataclasses.dataclass(frozen=True)
class KeyPairOption:
    key_name: str


CreateOption = Union[BootFromVolumeOption, KeyPairOption]

_OPTION_ORDER = (BootFromVolumeOption, KeyPairOption)


class CreateRequestBuilder:
    """Mutable builder of a `CreateRequest`."""

    def __init__(self, spec: common.ServerSpec) -> None:
        self.spec = spec
        self.block_devices: List[Dict[str, Any]] = []
        self.key_name = ''

    def apply(self, option: CreateOption) -> 'CreateRequestBuilder':
        if isinstance(option, BootFromVolumeOption):
            # The image reference must be gone before a boot volume is
            # attached; see boot.resolve_boot_source().
            if self.spec.image_ref:
                raise exceptions.InvalidInputError(
                    'A server cannot boot from both image '
                    f'{self.spec.image_ref!r} and volume '
                    f'{option.volume.volume_id!r}.')
            self.block_devices.append(option.volume.to_block_device())
        elif isinstance(option, KeyPairOption):
            self.key_name = option.key_name
        else:
            raise TypeError(f'Unknown create option: {option!r}')
        return self

    def build(self) -> common.CreateRequest:
        return common.CreateRequest(server=self.spec,
                                    block_devices=tuple(self.block_devices),
                                    key_name=self.key_name)


def options_for(boot_source: common.BootSource,
                key_name: Optional[str]) -> List[CreateOption]:
    """Returns the options needed for a boot source and key pair name."""
    options: List[CreateOption] = []
    if isinstance(boot_source, common.VolumeBoot):
        options.append(BootFromVolumeOption(volume=boot_source))
    if key_name:
        options.append(KeyPairOption(key_name=key_name))
    return options


def build_create_request(
        spec: common.ServerSpec,
        options: Sequence[CreateOption]) -> common.CreateRequest:
    """Applies `options` to `spec` in the documented order."""
    builder = CreateRequestBuilder(spec)
    for option in sorted(options, key=_option_rank):
        builder.apply(option)
    request = builder.build()
    # User data may hold secrets; keep it out of the log.
    logger.debug(f'Built create request for server {spec.name!r}: '
                 f'block devices={list(request.block_devices)}, '
                 f'key pair={request.key_name!r}')
    return request


def _option_rank(option: CreateOption) -> int:
    for rank, option_type in enumerate(_OPTION_ORDER):
        if isinstance(option, option_type):
            return rank
    raise TypeError(f'Unknown create option: {option!r}')
