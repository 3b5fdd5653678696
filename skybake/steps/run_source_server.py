"""Pipeline step launching the source server of an image build."""
import dataclasses
import functools
from typing import List, Optional

from skybake import exceptions
from skybake import pipeline
from skybake import sky_logging
from skybake.provision import boot
from skybake.provision import common
from skybake.provision import compute
from skybake.provision import options as options_lib
from skybake.provision import waiter
from skybake.provision import zones as zones_lib
from skybake.utils import common_utils
from skybake.utils import ux_utils

logger = sky_logging.init_logger(__name__)


class RunSourceServer(pipeline.Step):
    """Launches the source server and terminates it on cleanup.

    Reads from the pipeline state: config, flavor_id, source_image,
    volume_id (volume boot only) and availability_zones. Publishes the ready
    server as `state.server`.

    Servers of failed zone attempts whose deletion failed are kept as
    leftovers, and cleanup() deletes them along with the source server.
    """

    def __init__(self) -> None:
        self._server: Optional[common.ServerHandle] = None
        self._leftover_servers: List[common.ServerHandle] = []

    def run(self, state: pipeline.PipelineState) -> pipeline.StepAction:
        ui = state.ui
        try:
            client = state.compute_client()
        except Exception as e:  # pylint: disable=broad-except
            err = exceptions.ComputeApiError(
                f'Error initializing compute client: {e}')
            return self._halt(state, err)

        try:
            request = self._build_request(state)
        except exceptions.InvalidInputError as e:
            return self._halt(state, e)

        zones = zones_lib.order_zones(state.availability_zones,
                                      state.config.availability_zone)
        logger.debug(f'Launch order of availability zones: {zones}')
        try:
            server = zones_lib.launch_in_zones(
                request, zones, functools.partial(self._launch, state, client),
                ui)
        except Exception as e:  # pylint: disable=broad-except
            # Errors a compute client did not translate (e.g. transport
            # errors of a third-party SDK) end the failover as well.
            return self._halt(state, e)

        self._server = server
        state.server = server
        logger.info(
            ux_utils.finishing_message(
                f'Source server {server.server_id} is {server.status}.'))
        return pipeline.StepAction.CONTINUE

    def cleanup(self, state: pipeline.PipelineState) -> None:
        servers = list(self._leftover_servers)
        if self._server is not None:
            servers.append(self._server)
        if not servers:
            return

        try:
            client = state.compute_client()
        except Exception as e:  # pylint: disable=broad-except
            self._report_teardown_error(
                state, f'Error terminating server, may still be around: {e}')
            return

        for server in servers:
            if not self._terminate(state, client, server.server_id):
                continue
            if server is self._server:
                self._server = None
                state.server = None
            else:
                self._leftover_servers.remove(server)

    def _terminate(self, state: pipeline.PipelineState,
                   client: compute.ComputeClient,
                   server_id: common.ServerId) -> bool:
        """Deletes a server and waits until it is gone.

        Returns:
            True if the server was deleted. Failures are reported, not raised.
        """
        ui = state.ui
        ui.say(f'Terminating the source server: {server_id} ...')
        try:
            _delete_server(client, server_id, state.config.force_delete)
        except Exception as e:  # pylint: disable=broad-except
            self._report_teardown_error(
                state, f'Error terminating server, may still be around: {e}')
            return False

        # The pipeline is usually interrupted by the time cleanup runs, so
        # this wait must not stop on cancellation.
        conf = common.StateChangeConf(
            pending=common.DELETE_PENDING_STATUSES,
            target=[common.STATUS_DELETED],
            refresh=waiter.server_state_refresh_fn(client, server_id),
            poll_interval=state.config.state_poll_interval,
            timeout=state.config.state_timeout,
            description=f'server {server_id}')
        try:
            waiter.wait_for_state(conf)
        except Exception as e:  # pylint: disable=broad-except
            self._report_teardown_error(
                state, f'Error waiting for server {server_id} to be deleted, '
                f'may still be around: {e}')
            return False

        ui.message(f'Server {server_id} terminated.')
        return True

    def _build_request(
            self, state: pipeline.PipelineState) -> common.CreateRequest:
        config = state.config
        spec = common.ServerSpec(
            name=config.name,
            flavor_ref=state.flavor_id,
            image_ref=state.source_image or '',
            # Keeps the first occurrence of each group.
            security_groups=tuple(dict.fromkeys(config.security_groups)),
            networks=boot.build_network_attachments(config.ports,
                                                    config.networks),
            availability_zone=config.availability_zone,
            user_data=config.read_user_data(),
            config_drive=config.config_drive,
            metadata=dict(config.instance_metadata))
        spec, boot_source = boot.resolve_boot_source(
            spec, config.use_block_storage_volume, state.volume_id)
        logger.debug(f'Boot source of {spec.name!r}: {boot_source}')
        return options_lib.build_create_request(
            spec, options_lib.options_for(boot_source, config.ssh_keypair_name))

    def _launch(self, state: pipeline.PipelineState,
                client: compute.ComputeClient,
                request: common.CreateRequest) -> common.ServerHandle:
        """Creates a server and waits for it to become ACTIVE.

        A server that fails to become ready is deleted before the error is
        raised, so the next zone starts clean. A server whose wait was
        interrupted is kept as the step's server, for cleanup() to delete.
        A server that cannot be deleted here, or whose wait failed with an
        error the client did not translate, is kept as a leftover server.
        """
        ui = state.ui
        try:
            server = client.create_server(request)
        except exceptions.ComputeApiError as e:
            ui.error(f'Error launching source server: {e}')
            raise

        ui.message(f'Server ID: {server.server_id}')
        logger.debug(f'Server id: {server.server_id}, zone: '
                     f'{request.availability_zone or "<default>"}')

        ui.say('Waiting for server to become ready...')
        conf = common.StateChangeConf(
            pending=[common.STATUS_BUILD],
            target=[common.STATUS_ACTIVE],
            refresh=waiter.server_state_refresh_fn(client, server.server_id),
            owner=state,
            poll_interval=state.config.state_poll_interval,
            timeout=state.config.state_timeout,
            description=f'server {server.server_id}')
        try:
            ready = waiter.wait_for_state(conf)
        except exceptions.WaitInterruptedError:
            self._server = server
            state.server = server
            raise
        except (exceptions.StateWaitError, exceptions.ComputeApiError) as e:
            ui.error(f'Error waiting for server ({server.server_id}) to '
                     f'become ready: {e}')
            self._discard(state, client, server)
            raise
        except Exception:
            self._leftover_servers.append(server)
            raise
        # Refreshes do not always echo the zone back.
        if ready.availability_zone is None:
            ready = dataclasses.replace(
                ready, availability_zone=server.availability_zone)
        return ready

    def _discard(self, state: pipeline.PipelineState,
                 client: compute.ComputeClient,
                 server: common.ServerHandle) -> None:
        try:
            _delete_server(client, server.server_id, state.config.force_delete)
        except Exception as e:  # pylint: disable=broad-except
            self._leftover_servers.append(server)
            state.ui.error(f'Error deleting failed server {server.server_id}, '
                           f'may still be around: {e}')
            logger.warning(f'Failed to delete server {server.server_id}: '
                           f'{common_utils.format_exception(e)}')
            return
        state.ui.message(f'Deleted server {server.server_id} that failed to '
                         'become ready.')

    def _halt(self, state: pipeline.PipelineState,
              error: Exception) -> pipeline.StepAction:
        state.ui.error(str(error))
        logger.debug(f'Halting: {common_utils.format_exception(error)}')
        return state.halt(error)

    def _report_teardown_error(self, state: pipeline.PipelineState,
                               message: str) -> None:
        state.ui.error(message)
        logger.warning(ux_utils.error_message(message))


def _delete_server(client: compute.ComputeClient, server_id: common.ServerId,
                   force: bool) -> None:
    if force:
        client.force_delete_server(server_id)
    else:
        client.delete_server(server_id)
