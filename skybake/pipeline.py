"""Shared state and step interface of an image-building pipeline.

A pipeline run passes one `PipelineState` by reference to each of its steps.
Earlier steps publish their results (the chosen flavor, the source image, a
pre-created boot volume, candidate availability zones) through the typed
properties below; later steps read them. Reading a required entry that no
step published raises InvalidInputError, so a mis-ordered pipeline fails
before any provider call.
"""
import abc
import enum
import threading
from typing import Callable, List, Optional, TYPE_CHECKING

from skybake import config as config_lib
from skybake import exceptions
from skybake.utils import ux_utils

if TYPE_CHECKING:
    from skybake.provision import common as provision_common
    from skybake.provision import compute

ComputeClientFactory = Callable[[], 'compute.ComputeClient']


class StepAction(enum.Enum):
    """What the pipeline driver should do after a step ran."""
    CONTINUE = 'continue'
    HALT = 'halt'


class PipelineState:
    """Typed state shared by the steps of a single pipeline run.

    Besides the named entries, it carries the cancellation signal of the run:
    `cancel()` is called by the driver on an operator abort, `halt()` when a
    step failed. Blocking waits observe both through `is_interrupted()` and
    `wait_interrupted()`.
    """

    def __init__(
            self,
            config: config_lib.SourceServerConfig,
            ui: ux_utils.MessageSink,
            compute_client_factory: Optional[ComputeClientFactory] = None
    ) -> None:
        self._config = config
        self._ui = ui
        self._compute_client_factory = compute_client_factory
        self._flavor_id: Optional[str] = None
        self._source_image: Optional[str] = None
        self._volume_id: Optional[str] = None
        self._availability_zones: List[str] = []
        self._server: Optional['provision_common.ServerHandle'] = None
        self._error: Optional[BaseException] = None
        self._cancelled = threading.Event()
        self._halted = threading.Event()
        # Set by either of the two above.
        self._interrupted = threading.Event()

    @property
    def config(self) -> config_lib.SourceServerConfig:
        return self._config

    @property
    def ui(self) -> ux_utils.MessageSink:
        return self._ui

    def compute_client(self) -> 'compute.ComputeClient':
        """Builds a compute client for the run's credentials.

        Raises:
            ValueError: if no client factory was configured.
            Exception: whatever the factory raises, e.g. on bad credentials.
        """
        if self._compute_client_factory is None:
            raise ValueError('No compute client configured for the pipeline.')
        return self._compute_client_factory()

    @property
    def flavor_id(self) -> str:
        if not self._flavor_id:
            raise exceptions.InvalidInputError(
                'No flavor was chosen for the source server.')
        return self._flavor_id

    @flavor_id.setter
    def flavor_id(self, value: str) -> None:
        self._flavor_id = value

    @property
    def source_image(self) -> Optional[str]:
        return self._source_image

    @source_image.setter
    def source_image(self, value: Optional[str]) -> None:
        self._source_image = value

    @property
    def volume_id(self) -> Optional[str]:
        """The pre-created boot volume; None when no step created one."""
        return self._volume_id

    @volume_id.setter
    def volume_id(self, value: Optional[str]) -> None:
        self._volume_id = value

    @property
    def availability_zones(self) -> List[str]:
        """Candidate zones; empty lets the provider choose."""
        return list(self._availability_zones)

    @availability_zones.setter
    def availability_zones(self, value: List[str]) -> None:
        self._availability_zones = list(value)

    @property
    def server(self) -> Optional['provision_common.ServerHandle']:
        return self._server

    @server.setter
    def server(self, value: Optional['provision_common.ServerHandle']) -> None:
        self._server = value

    @property
    def error(self) -> Optional[BaseException]:
        return self._error

    def halt(self, error: BaseException) -> StepAction:
        """Records a step failure and signals the run to stop."""
        self._error = error
        self._halted.set()
        self._interrupted.set()
        return StepAction.HALT

    def cancel(self) -> None:
        """Signals an operator abort of the run."""
        self._cancelled.set()
        self._interrupted.set()

    def is_cancelled(self) -> bool:
        return self._cancelled.is_set()

    def is_halted(self) -> bool:
        return self._halted.is_set()

    def is_interrupted(self) -> bool:
        return self._interrupted.is_set()

    def wait_interrupted(self, timeout: float) -> bool:
        """Sleeps up to `timeout` seconds, returning early on cancel/halt.

        Returns:
            True if the run was interrupted.
        """
        return self._interrupted.wait(timeout=timeout)


class Step(abc.ABC):
    """A single unit of a pipeline run.

    `run` performs the step's work and tells the driver whether to go on.
    `cleanup` is called by the driver for every step that ran, in reverse
    order, once the run finished, successfully or not. It must not raise.
    """

    @abc.abstractmethod
    def run(self, state: PipelineState) -> StepAction:
        raise NotImplementedError

    @abc.abstractmethod
    def cleanup(self, state: PipelineState) -> None:
        raise NotImplementedError
