from __future__ import annotations

import abc
import logging
import typing as t

import importlib_metadata

if t.TYPE_CHECKING:
    from oamver.application import Application

T = t.TypeVar("T")
logger = logging.getLogger(__name__)


class ApplicationPlugin(t.Generic[T], abc.ABC):
    """A plugin that is activated on application load, usually used to register additional CLI commands. Besides the
    builtin plugins, plugins are loaded from the #ENTRYPOINT group."""

    ENTRYPOINT = "oamver.plugins.application"

    @abc.abstractmethod
    def load_configuration(self, app: Application) -> T:
        """Load the configuration of the plugin. Use #Application.config to access the project configuration."""

    @abc.abstractmethod
    def activate(self, app: Application, config: T) -> None:
        """Activate the plugin. Register a #Command to #Application.cleo."""


def iter_entrypoints(group: type[T]) -> t.Iterator[tuple[str, t.Callable[[], type[T]]]]:
    """Yields the name and a loader for each entrypoint in the group of the plugin type *group*. The loader raises a
    #TypeError if the entrypoint does not point to a subclass of *group*."""

    def _make_loader(ep: importlib_metadata.EntryPoint) -> t.Callable[[], type[T]]:
        def loader() -> type[T]:
            value = ep.load()
            if not isinstance(value, type) or not issubclass(value, group):
                raise TypeError(f'entrypoint "{ep.name}" in group "{ep.group}" is not a {group.__name__}')
            return value

        return loader

    for ep in importlib_metadata.entry_points(group=group.ENTRYPOINT):  # type: ignore[attr-defined]
        yield ep.name, _make_loader(ep)
