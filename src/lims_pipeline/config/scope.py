"""Configuration scoping for entry-time overrides.

A scope only affects ``resolve_config()`` calls made inside it. Once a
FrozenConfig is attached to a command, handlers never see ambient changes.
"""

from collections.abc import Generator
from contextlib import contextmanager
import contextvars

from .types import ResolvedConfig

_ambient_resolved_config: contextvars.ContextVar[ResolvedConfig] = (
    contextvars.ContextVar("lims_pipeline_resolved_config")
)


def get_ambient_resolved_config() -> ResolvedConfig | None:
    """Return the configuration set by an enclosing scope, or None."""
    try:
        return _ambient_resolved_config.get()
    except LookupError:
        return None


@contextmanager
def config_scope(config: ResolvedConfig) -> Generator[None]:
    """Temporarily use a different resolved configuration.

    Example:
        base = resolve_config()
        with config_scope(base.with_overrides(cmo_only=True)):
            processor = create_processor()  # Gets cmo_only=True
    """
    token = _ambient_resolved_config.set(config)
    try:
        yield
    finally:
        _ambient_resolved_config.reset(token)
