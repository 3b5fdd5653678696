"""Pipeline steps provided by skybake."""

from skybake.steps.run_source_server import RunSourceServer

__all__ = ['RunSourceServer']
