"""Shared fixtures for skybake unit tests."""
import collections
import itertools
from typing import Dict, List, Optional

import pytest

from skybake import config as config_lib
from skybake import exceptions
from skybake import pipeline
from skybake.provision import common
from skybake.provision import compute


class FakeComputeClient(compute.ComputeClient):
    """In-memory compute service.

    Servers report the statuses queued with `script_statuses()` one per
    get_server() call, then keep the last one. Deleted servers are not found.
    """

    def __init__(self) -> None:
        self.create_requests: List[common.CreateRequest] = []
        self.get_calls: List[str] = []
        self.deleted: List[str] = []
        self.force_deleted: List[str] = []
        self.zone_errors: Dict[str, Exception] = {}
        self.delete_error: Optional[Exception] = None
        self._statuses: collections.deque = collections.deque(['ACTIVE'])
        self._ids = itertools.count(1)

    def script_statuses(self, *statuses: str) -> None:
        self._statuses = collections.deque(statuses)

    def create_server(self,
                      request: common.CreateRequest) -> common.ServerHandle:
        self.create_requests.append(request)
        error = self.zone_errors.get(request.availability_zone)
        if error is not None:
            raise error
        return common.ServerHandle(server_id=f'srv-{next(self._ids)}',
                                   status=common.STATUS_BUILD,
                                   availability_zone=request.availability_zone)

    def get_server(self, server_id: common.ServerId) -> common.ServerHandle:
        self.get_calls.append(server_id)
        if server_id in self.deleted or server_id in self.force_deleted:
            raise exceptions.ServerNotFoundError(server_id)
        status = (self._statuses.popleft()
                  if len(self._statuses) > 1 else self._statuses[0])
        return common.ServerHandle(server_id=server_id,
                                   status=status,
                                   progress=100 if status == 'ACTIVE' else 50)

    def delete_server(self, server_id: common.ServerId) -> None:
        if self.delete_error is not None:
            raise self.delete_error
        self.deleted.append(server_id)

    def force_delete_server(self, server_id: common.ServerId) -> None:
        if self.delete_error is not None:
            raise self.delete_error
        self.force_deleted.append(server_id)


class RecordingUi:
    """MessageSink keeping every message for assertions."""

    def __init__(self) -> None:
        self.said: List[str] = []
        self.messages: List[str] = []
        self.errors: List[str] = []

    def say(self, message: str) -> None:
        self.said.append(message)

    def message(self, message: str) -> None:
        self.messages.append(message)

    def error(self, message: str) -> None:
        self.errors.append(message)


@pytest.fixture
def fake_client() -> FakeComputeClient:
    return FakeComputeClient()


@pytest.fixture
def ui() -> RecordingUi:
    return RecordingUi()


@pytest.fixture
def source_config() -> config_lib.SourceServerConfig:
    return config_lib.SourceServerConfig(name='builder',
                                         security_groups=['default'],
                                         state_poll_interval=0.01,
                                         state_timeout=5)


@pytest.fixture
def state(source_config, ui, fake_client) -> pipeline.PipelineState:
    pipeline_state = pipeline.PipelineState(source_config,
                                            ui,
                                            compute_client_factory=lambda:
                                            fake_client)
    pipeline_state.flavor_id = 'f1'
    pipeline_state.source_image = 'img-1'
    pipeline_state.availability_zones = ['az1', 'az2']
    return pipeline_state
