"""Fixed deployment settings.

The game takes no flags, environment variables or config files; everything
it needs to reach the model lives here.
"""

from pydantic import BaseModel, ConfigDict

DEFAULT_THEME = "Short, Janos alone in the desert"


class Settings(BaseModel):
    model_config = ConfigDict(frozen=True)

    base_url: str = "http://localhost:11434"
    model: str = "llama3.2"
    theme: str = DEFAULT_THEME
    title: str = "Story"
    # None waits forever, matching the blocking foreground loop.
    request_timeout: float | None = None
    log_level: str = "WARNING"
