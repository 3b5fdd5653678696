"""Global environment options for skybake."""
import enum
import os


class Options(enum.Enum):
    """Environment variables for skybake."""

    # (env var name, default value)
    SHOW_DEBUG_INFO = ('SKYBAKE_DEBUG', False)
    MINIMIZE_LOGGING = ('SKYBAKE_MINIMIZE_LOGGING', True)
    # Disables colored output of the console message sink, e.g. when the
    # messages are captured by a CI log.
    DISABLE_COLOR = ('SKYBAKE_NO_COLOR', False)

    def __init__(self, env_var: str, default: bool) -> None:
        self.env_var = env_var
        self.default = default

    def __repr__(self) -> str:
        return self.env_var

    def get(self) -> bool:
        """Check if an environment variable is set to True."""
        return os.getenv(self.env_var,
                         str(self.default)).lower() in ('true', '1')
