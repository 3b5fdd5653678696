"""Unit tests for skybake/steps/run_source_server.py."""
import threading

from skybake import exceptions
from skybake import pipeline
from skybake.steps import run_source_server


class TestRun:
    """Tests for RunSourceServer.run()."""

    def test_happy_path(self, state, fake_client, ui):
        """One launch in the first zone, published once ACTIVE."""
        fake_client.script_statuses('BUILD', 'BUILD', 'ACTIVE')
        step = run_source_server.RunSourceServer()

        assert step.run(state) == pipeline.StepAction.CONTINUE

        assert [r.availability_zone for r in fake_client.create_requests
               ] == ['az1']
        request = fake_client.create_requests[0]
        assert request.server.image_ref == 'img-1'
        assert request.server.flavor_ref == 'f1'
        assert request.block_devices == ()
        assert state.server is not None
        assert state.server.status == 'ACTIVE'
        assert state.server.server_id == 'srv-1'
        assert state.error is None
        assert ui.said == [
            'Launching server in az:az1 ...',
            'Waiting for server to become ready...',
        ]
        assert ui.messages == ['Server ID: srv-1']
        assert ui.errors == []

    def test_preferred_zone_fails_then_head_zone(self, state, fake_client,
                                                 ui):
        """The preferred zone is tried first, the old head zone next."""
        state.config.availability_zone = 'az2'
        fake_client.zone_errors['az2'] = exceptions.ComputeApiError(
            'no capacity')
        step = run_source_server.RunSourceServer()

        assert step.run(state) == pipeline.StepAction.CONTINUE
        assert [r.availability_zone for r in fake_client.create_requests
               ] == ['az2', 'az1']
        assert state.server.availability_zone == 'az1'
        assert ui.errors == ['Error launching source server: no capacity']

    def test_all_zones_fail(self, state, fake_client, ui):
        """Exhausting the zones halts with the last zone's error."""
        fake_client.zone_errors['az1'] = exceptions.ComputeApiError('quota')
        fake_client.zone_errors['az2'] = exceptions.ComputeApiError(
            'no capacity')
        step = run_source_server.RunSourceServer()

        assert step.run(state) == pipeline.StepAction.HALT
        assert isinstance(state.error, exceptions.ZonesExhaustedError)
        assert str(state.error) == 'no capacity'
        assert state.is_halted()
        assert state.server is None
        assert ui.errors[-1] == 'no capacity'

    def test_volume_boot(self, state, fake_client):
        """Volume boot sends no image and one boot-index-0 volume."""
        state.config.use_block_storage_volume = True
        state.volume_id = 'vol-1'
        step = run_source_server.RunSourceServer()

        assert step.run(state) == pipeline.StepAction.CONTINUE
        request = fake_client.create_requests[0]
        assert request.server.image_ref == ''
        assert len(request.block_devices) == 1
        assert request.block_devices[0]['boot_index'] == 0
        assert request.block_devices[0]['uuid'] == 'vol-1'

    def test_volume_boot_without_volume(self, state, fake_client, ui):
        """A missing volume halts before any create call."""
        state.config.use_block_storage_volume = True
        step = run_source_server.RunSourceServer()

        assert step.run(state) == pipeline.StepAction.HALT
        assert isinstance(state.error, exceptions.InvalidInputError)
        assert fake_client.create_requests == []
        assert len(ui.errors) == 1

    def test_missing_flavor(self, source_config, ui, fake_client):
        """A flavor never published by an earlier step is an input error."""
        state = pipeline.PipelineState(source_config,
                                       ui,
                                       compute_client_factory=lambda:
                                       fake_client)
        state.source_image = 'img-1'
        step = run_source_server.RunSourceServer()

        assert step.run(state) == pipeline.StepAction.HALT
        assert isinstance(state.error, exceptions.InvalidInputError)
        assert fake_client.create_requests == []

    def test_unreadable_user_data_file(self, state, fake_client, tmp_path):
        """A missing user data file halts before any create call."""
        state.config.user_data_file = str(tmp_path / 'missing.yaml')
        step = run_source_server.RunSourceServer()

        assert step.run(state) == pipeline.StepAction.HALT
        assert isinstance(state.error, exceptions.InvalidInputError)
        assert 'Error reading user data file' in str(state.error)
        assert fake_client.create_requests == []

    def test_user_data_file_overrides_inline(self, state, fake_client,
                                             tmp_path):
        """The user data file content is sent verbatim."""
        user_data = tmp_path / 'cloud-init'
        user_data.write_bytes(b'#cloud-config\n\x00binary')
        state.config.user_data = 'inline'
        state.config.user_data_file = str(user_data)
        step = run_source_server.RunSourceServer()

        assert step.run(state) == pipeline.StepAction.CONTINUE
        assert fake_client.create_requests[0].server.user_data == (
            b'#cloud-config\n\x00binary')

    def test_request_options(self, state, fake_client):
        """Config options flow into the create request."""
        config = state.config
        config.ports = ['p1']
        config.networks = ['n1', 'n2']
        config.security_groups = ['default', 'ssh', 'default']
        config.instance_metadata = {'owner': 'ci'}
        config.config_drive = True
        config.ssh_keypair_name = 'builder-key'
        step = run_source_server.RunSourceServer()

        assert step.run(state) == pipeline.StepAction.CONTINUE
        request = fake_client.create_requests[0]
        assert [nic.port_id for nic in request.server.networks[:1]] == ['p1']
        assert [nic.network_id for nic in request.server.networks[1:]
               ] == ['n1', 'n2']
        assert request.server.security_groups == ('default', 'ssh')
        assert request.server.metadata == {'owner': 'ci'}
        assert request.server.config_drive is True
        assert request.key_name == 'builder-key'

    def test_client_init_failure(self, source_config, ui):
        """A client that cannot be built halts the step."""

        def factory():
            raise RuntimeError('bad credentials')

        state = pipeline.PipelineState(source_config,
                                       ui,
                                       compute_client_factory=factory)
        state.flavor_id = 'f1'
        state.source_image = 'img-1'
        step = run_source_server.RunSourceServer()

        assert step.run(state) == pipeline.StepAction.HALT
        assert 'Error initializing compute client' in str(state.error)

    def test_untranslated_create_error_halts(self, state, fake_client, ui,
                                             monkeypatch):
        """An error outside the skybake taxonomy halts instead of escaping."""

        class TransportError(Exception):
            pass

        def create_server(request):
            fake_client.create_requests.append(request)
            raise TransportError('connection refused')

        monkeypatch.setattr(fake_client, 'create_server', create_server)
        step = run_source_server.RunSourceServer()

        assert step.run(state) == pipeline.StepAction.HALT
        assert isinstance(state.error, TransportError)
        assert state.is_halted()
        # Failover stops at the first untranslated error.
        assert len(fake_client.create_requests) == 1
        assert ui.errors == ['connection refused']

    def test_untranslated_wait_error_leaves_server_for_cleanup(
            self, state, fake_client, monkeypatch):
        """A server whose status cannot be read is deleted on cleanup."""
        step = run_source_server.RunSourceServer()
        get_server = fake_client.get_server

        def broken_get_server(server_id):
            raise RuntimeError('read timed out')

        monkeypatch.setattr(fake_client, 'get_server', broken_get_server)

        assert step.run(state) == pipeline.StepAction.HALT
        assert isinstance(state.error, RuntimeError)
        assert state.server is None

        monkeypatch.setattr(fake_client, 'get_server', get_server)
        step.cleanup(state)
        assert fake_client.deleted == ['srv-1']

    def test_failed_readiness_is_discarded(self, state, fake_client, ui):
        """A server ending in ERROR is deleted and the next zone tried."""
        fake_client.script_statuses('BUILD', 'ERROR', 'ACTIVE')
        step = run_source_server.RunSourceServer()

        assert step.run(state) == pipeline.StepAction.CONTINUE
        assert [r.availability_zone for r in fake_client.create_requests
               ] == ['az1', 'az2']
        assert fake_client.deleted == ['srv-1']
        assert state.server.server_id == 'srv-2'
        assert any('srv-1' in e and 'become ready' in e for e in ui.errors)

    def test_cancel_keeps_server_for_cleanup(self, state, fake_client):
        """An aborted wait halts and leaves the server for cleanup."""
        fake_client.script_statuses('BUILD')
        state.config.state_poll_interval = 30
        step = run_source_server.RunSourceServer()
        timer = threading.Timer(0.1, state.cancel)
        timer.start()
        try:
            action = step.run(state)
        finally:
            timer.cancel()

        assert action == pipeline.StepAction.HALT
        assert isinstance(state.error, exceptions.WaitInterruptedError)
        assert len(fake_client.create_requests) == 1
        assert state.server is not None
        assert state.server.server_id == 'srv-1'

        step.cleanup(state)
        assert fake_client.deleted == ['srv-1']
        assert state.server is None


class TestCleanup:
    """Tests for RunSourceServer.cleanup()."""

    def test_noop_without_server(self, state, fake_client, ui):
        step = run_source_server.RunSourceServer()
        step.cleanup(state)

        assert fake_client.deleted == []
        assert fake_client.force_deleted == []
        assert ui.said == []

    def test_graceful_delete(self, state, fake_client, ui):
        """The server is deleted and the step waits for DELETED."""
        step = run_source_server.RunSourceServer()
        assert step.run(state) == pipeline.StepAction.CONTINUE

        step.cleanup(state)

        assert fake_client.deleted == ['srv-1']
        assert fake_client.force_deleted == []
        assert state.server is None
        assert ui.said[-1] == 'Terminating the source server: srv-1 ...'
        assert ui.messages[-1] == 'Server srv-1 terminated.'

    def test_force_delete(self, state, fake_client):
        state.config.force_delete = True
        step = run_source_server.RunSourceServer()
        assert step.run(state) == pipeline.StepAction.CONTINUE

        step.cleanup(state)

        assert fake_client.force_deleted == ['srv-1']
        assert fake_client.deleted == []

    def test_force_delete_failure_is_reported(self, state, fake_client, ui):
        """A failed delete is reported, not raised, and not waited on."""
        state.config.force_delete = True
        step = run_source_server.RunSourceServer()
        assert step.run(state) == pipeline.StepAction.CONTINUE
        fake_client.delete_error = exceptions.ComputeApiError('forbidden')
        gets_before = len(fake_client.get_calls)

        step.cleanup(state)

        assert len(fake_client.get_calls) == gets_before
        assert ui.errors == [
            'Error terminating server, may still be around: forbidden'
        ]
        assert state.server is not None

    def test_wait_failure_is_reported(self, state, fake_client, ui,
                                      monkeypatch):
        """A server stuck in ERROR while deleting is reported, not raised."""
        step = run_source_server.RunSourceServer()
        assert step.run(state) == pipeline.StepAction.CONTINUE
        # Deletion is accepted but the server goes to ERROR.
        monkeypatch.setattr(fake_client, 'delete_server', lambda _: None)
        fake_client.script_statuses('ERROR')

        step.cleanup(state)

        assert len(ui.errors) == 1
        assert 'to be deleted, may still be around' in ui.errors[0]
        assert state.server is not None

    def test_wait_ignores_cancellation(self, state, fake_client):
        """Teardown still waits for DELETED after the run was cancelled."""
        step = run_source_server.RunSourceServer()
        assert step.run(state) == pipeline.StepAction.CONTINUE
        state.cancel()

        step.cleanup(state)

        assert fake_client.deleted == ['srv-1']
        assert state.server is None

    def test_undeleted_failed_attempt_is_deleted(self, state, fake_client,
                                                 ui):
        """A failed attempt whose delete failed is retried on cleanup."""
        fake_client.script_statuses('BUILD', 'ERROR', 'ACTIVE')
        fake_client.delete_error = exceptions.ComputeApiError('busy')
        step = run_source_server.RunSourceServer()

        assert step.run(state) == pipeline.StepAction.CONTINUE
        assert state.server.server_id == 'srv-2'
        assert fake_client.deleted == []
        assert any('srv-1' in e and 'busy' in e for e in ui.errors)

        fake_client.delete_error = None
        step.cleanup(state)

        assert fake_client.deleted == ['srv-1', 'srv-2']
        assert state.server is None
        assert 'Server srv-1 terminated.' in ui.messages
        assert 'Server srv-2 terminated.' in ui.messages

    def test_leftovers_of_exhausted_zones_are_deleted(self, state,
                                                      fake_client):
        """Cleanup deletes failed attempts even when no server is ready."""
        fake_client.script_statuses('ERROR')
        fake_client.delete_error = exceptions.ComputeApiError('busy')
        step = run_source_server.RunSourceServer()

        assert step.run(state) == pipeline.StepAction.HALT
        assert isinstance(state.error, exceptions.ZonesExhaustedError)
        assert state.server is None

        fake_client.delete_error = None
        step.cleanup(state)

        assert fake_client.deleted == ['srv-1', 'srv-2']

    def test_leftover_kept_when_delete_fails_again(self, state, fake_client,
                                                   ui):
        fake_client.script_statuses('BUILD', 'ERROR', 'ACTIVE')
        fake_client.delete_error = exceptions.ComputeApiError('busy')
        step = run_source_server.RunSourceServer()
        assert step.run(state) == pipeline.StepAction.CONTINUE

        step.cleanup(state)
        assert fake_client.deleted == []

        fake_client.delete_error = None
        step.cleanup(state)
        assert fake_client.deleted == ['srv-1', 'srv-2']
