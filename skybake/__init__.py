"""The skybake package."""
from skybake.config import load_config
from skybake.config import SourceServerConfig
from skybake.pipeline import PipelineState
from skybake.pipeline import Step
from skybake.pipeline import StepAction
from skybake.steps import RunSourceServer

__version__ = '0.1.0'

__all__ = [
    '__version__',
    'load_config',
    'PipelineState',
    'RunSourceServer',
    'SourceServerConfig',
    'Step',
    'StepAction',
]
