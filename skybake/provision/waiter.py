"""Blocking waits for a compute resource to reach a state."""
import time
from typing import Any

from skybake import exceptions
from skybake import sky_logging
from skybake.provision import common
from skybake.provision import compute

logger = sky_logging.init_logger(__name__)


def wait_for_state(conf: common.StateChangeConf) -> Any:
    """Polls `conf.refresh` until the resource reaches a target status.

    Each poll does one of:
      - return the refreshed resource, if the status is a target;
      - sleep `conf.poll_interval` and poll again, if the status is pending;
      - raise, if the status is anything else. Unexpected statuses (e.g.
        ERROR) are terminal, so they are never retried.

    Errors raised by `conf.refresh` propagate as is.

    Raises:
        UnexpectedStateError: if a non-pending, non-target status is seen.
        WaitInterruptedError: if `conf.owner` is cancelled or halted. Seen
          within one poll interval.
        StateTimeoutError: if `conf.timeout` seconds passed without reaching
          a target status.
    """
    target = list(conf.target)
    logger.debug(f'Waiting for {conf.description} to become: {target}')
    start = time.time()
    while True:
        resource, status, progress = conf.refresh()
        if status in conf.target:
            logger.debug(f'{conf.description} reached {status} after '
                         f'{time.time() - start:.1f}s.')
            return resource

        owner = conf.owner
        if owner is not None and owner.is_interrupted():
            raise exceptions.WaitInterruptedError()

        if status not in conf.pending:
            raise exceptions.UnexpectedStateError(status, target)

        elapsed = time.time() - start
        if conf.timeout is not None and elapsed >= conf.timeout:
            raise exceptions.StateTimeoutError(
                f'Timed out after {elapsed:.0f}s waiting for '
                f'{conf.description} to become {target}; last state: '
                f'{status!r}.')

        logger.debug(f'Waiting for {conf.description} to become: {target} '
                     f'currently {status} ({progress}%)')
        if owner is not None:
            if owner.wait_interrupted(conf.poll_interval):
                raise exceptions.WaitInterruptedError()
        else:
            time.sleep(conf.poll_interval)


def server_state_refresh_fn(client: compute.ComputeClient,
                            server_id: common.ServerId) -> common.RefreshFn:
    """Returns a refresh function reporting the status of a server.

    A server the compute service no longer knows is reported as DELETED.
    """

    def refresh():
        try:
            server = client.get_server(server_id)
        except exceptions.ServerNotFoundError:
            logger.debug(f'Server {server_id} not found on state refresh, '
                         'treating it as DELETED.')
            return None, common.STATUS_DELETED, 0
        return server, server.status, server.progress

    return refresh
