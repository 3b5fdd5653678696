"""Boot source and network resolution of a server create request."""
import dataclasses
from typing import Optional, Sequence, Tuple

from skybake import exceptions
from skybake.provision import common


def resolve_boot_source(
        spec: common.ServerSpec, use_block_storage_volume: bool,
        volume_id: Optional[str]
) -> Tuple[common.ServerSpec, common.BootSource]:
    """Decides whether the server boots from its image or from a volume.

    The compute API rejects an image reference together with a boot volume,
    so for volume boot the returned spec has its image reference cleared.
    `spec` itself is left untouched.

    Args:
        spec: The base spec, carrying the source image reference.
        use_block_storage_volume: Whether to boot from a pre-created volume.
        volume_id: The pre-created volume, if any.

    Returns:
        A (spec, boot source) pair.

    Raises:
        InvalidInputError: if volume boot is requested without a volume, or
          image boot without an image.
    """
    if use_block_storage_volume:
        if not volume_id:
            raise exceptions.InvalidInputError(
                'Booting from a block storage volume was requested, but no '
                'volume id is available.')
        resolved = dataclasses.replace(spec,
                                       image_ref='',
                                       boot_volume_id=volume_id)
        return resolved, common.VolumeBoot(volume_id=volume_id)
    if not spec.image_ref:
        raise exceptions.InvalidInputError(
            'No source image to boot the server from.')
    image_boot = common.ImageBoot(image_ref=spec.image_ref)
    return dataclasses.replace(spec, boot_volume_id=None), image_boot


def build_network_attachments(
        ports: Sequence[str],
        networks: Sequence[str]) -> Tuple[common.NetworkAttachment, ...]:
    """Merges pre-created ports and networks into the server's NIC list.

    Ports come first, then networks, each in the given order. Empty inputs
    give an empty tuple, which leaves the network choice to the provider.
    """
    attachments = [common.NetworkAttachment.port(p) for p in ports]
    attachments.extend(common.NetworkAttachment.network(n) for n in networks)
    return tuple(attachments)
