"""Availability zone failover of server launches."""
from typing import Callable, List, Sequence, Tuple, TypeVar

from skybake import exceptions
from skybake import sky_logging
from skybake.provision import common
from skybake.utils import common_utils
from skybake.utils import ux_utils

logger = sky_logging.init_logger(__name__)

T = TypeVar('T')


def order_zones(zones: Sequence[str], preferred: str) -> List[str]:
    """Returns the zones in launch order, the preferred zone first.

    The preferred zone swaps places with the first zone; the other zones
    keep their positions. `zones` is not modified.

    Duplicate candidates are kept. Only the first occurrence of the preferred
    zone is swapped: once it is at the head, swapping a later occurrence
    would exchange the zone with itself.
    """
    ordered = list(zones)
    if not preferred:
        return ordered
    for i, zone in enumerate(ordered):
        if zone == preferred:
            ordered[0], ordered[i] = ordered[i], ordered[0]
            break
    return ordered


def launch_in_zones(request: common.CreateRequest, zones: Sequence[str],
                    launch_fn: Callable[[common.CreateRequest], T],
                    ui: ux_utils.MessageSink) -> T:
    """Tries `launch_fn` zone by zone until one launch succeeds.

    Zones are tried sequentially, in the given order, and a failed zone is
    never retried. With no zones, a single launch is made in the zone the
    request already names (empty: the provider's choice).

    Args:
        request: The create request; its zone is replaced per attempt.
        zones: The ordered candidate zones, see order_zones().
        launch_fn: Creates a server from a request and waits for it to be
          ready.
        ui: Receives a progress message per attempt.

    Returns:
        What `launch_fn` returned for the first successful zone.

    Raises:
        ZonesExhaustedError: if every zone failed. Its message is the error of
          the last zone.
        WaitInterruptedError: if the pipeline was interrupted; the remaining
          zones are not tried.
    """
    attempt_zones = list(zones) if zones else [request.availability_zone]
    failover_history: List[Tuple[str, Exception]] = []
    for i, zone in enumerate(attempt_zones):
        ui.say(f'Launching server in az:{zone} ...')
        try:
            return launch_fn(request.with_zone(zone))
        except exceptions.WaitInterruptedError:
            raise
        except (exceptions.ComputeApiError, exceptions.StateWaitError) as e:
            failover_history.append((zone, e))
            logger.debug(f'Launch in az:{zone} failed: '
                         f'{common_utils.format_exception(e)}')
            if i + 1 < len(attempt_zones):
                logger.info(
                    ux_utils.retry_message(
                        f'Launch in az:{zone} failed, trying '
                        f'az:{attempt_zones[i + 1]}.'))

    last_zone, last_error = failover_history[-1]
    logger.debug(f'Launch failed in all {len(attempt_zones)} zone(s); last '
                 f'zone: {last_zone}.')
    raise exceptions.ZonesExhaustedError(str(last_error),
                                         failover_history) from last_error
