""" With the application object we manage the CLI commands and access to the project configuration, the persisted
base version, the Git metadata and the OAM manifest. """

from __future__ import annotations

import logging
import textwrap
import typing as t
from pathlib import Path

from cleo.application import Application as BaseCleoApplication  # type: ignore[import]
from cleo.commands.command import Command as _BaseCommand  # type: ignore[import]
from cleo.helpers import argument, option  # type: ignore[import]
from cleo.io.io import IO  # type: ignore[import]

from oamver import __version__
from oamver.util.once import Once

if t.TYPE_CHECKING:
    from oamver.configuration import Configuration, OamverConfig
    from oamver.manifest import ManifestPatcher
    from oamver.plugins import ApplicationPlugin
    from oamver.vcs import VcsInfoProvider
    from oamver.version import BaseVersionFile, GitInfo, VersionInfo

__all__ = ["Command", "argument", "option", "IO", "Application"]
logger = logging.getLogger(__name__)


class Command(_BaseCommand):
    help: str
    description: str

    #: Example invocations (without the application name) listed in the usage.
    examples: t.ClassVar[list[str]] = []

    def __init_subclass__(cls) -> None:
        # Only look at the class itself, the help of a base command must not leak into subclasses.
        if not cls.__dict__.get("help"):
            first_line, remainder = (cls.__doc__ or "").partition("\n")[::2]
            cls.help = (first_line.strip() + "\n" + textwrap.dedent(remainder)).strip()
        cls.description = (
            cls.__dict__.get("description") or (cls.help.strip().splitlines()[0] if cls.help else None) or ""
        )


class CleoApplication(BaseCleoApplication):
    from cleo.formatters.style import Style  # type: ignore[import]
    from cleo.io.inputs.input import Input  # type: ignore[import]
    from cleo.io.outputs.output import Output  # type: ignore[import]

    _styles: dict[str, Style]

    def __init__(self, init: t.Callable[[IO], t.Any], name: str = "console", version: str = "") -> None:
        super().__init__(name, version)
        self._init_callback = init
        self._styles = {}

        # Skip cleo's default commands, the usage command replaces them.
        self._initialized = True
        from oamver.util.cleo import UsageCommand

        self.add(UsageCommand())
        self._default_command = "help"

        self.add_style("code", "blue")
        self.add_style("warning", "magenta")
        self.add_style("u", options=["underline"])
        self.add_style("s", "yellow")
        self.add_style("opt", "cyan", options=["italic"])

    def add_style(self, name, fg=None, bg=None, options=None):
        self._styles[name] = self.Style(fg, bg, options)

    def create_io(
        self, input: Input | None = None, output: Output | None = None, error_output: Output | None = None
    ) -> IO:
        from oamver.util.cleo import add_style

        io = super().create_io(input, output, error_output)
        for style_name, style in self._styles.items():
            add_style(io, style_name, style)
        return io

    def find(self, name: str) -> _BaseCommand:
        """Unknown command names fall back to the usage (the `help` command)."""

        if not self.has(name):
            logger.debug("Unknown command <subj>%s</subj>, showing the usage", name)
            name = self._default_command
        return super().find(name)

    def render_error(self, error: Exception, io: IO) -> None:
        import subprocess as sp

        if isinstance(error, sp.CalledProcessError):
            msg = "Uncaught CalledProcessError raised for command <subj>%s</subj> (exit code: <val>%s</val>)."
            args: tuple[t.Any, ...] = (error.args[1], error.returncode)
            stdout: str | None = error.stdout.decode() if error.stdout else None
            stderr: str | None = error.stderr.decode() if error.stderr else None
            if stdout:
                msg += "\n  stdout:\n%s"
                args += (textwrap.indent(stdout, "    "),)
            if stderr:
                msg += "\n  stderr:\n%s"
                args += (textwrap.indent(stderr, "    "),)

            logger.error(msg, *args)

        return super().render_error(error, io)

    def _configure_io(self, io: IO) -> None:
        from oamver.util.logging import configure_logging

        fmt = "%(message)s"
        if io.input.has_parameter_option("-vvv"):
            fmt = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
            level = logging.DEBUG
        elif io.input.has_parameter_option("-vv"):
            level = logging.DEBUG
        elif io.input.has_parameter_option("-v"):
            level = logging.INFO
        elif io.input.has_parameter_option("-q"):
            level = logging.ERROR
        else:
            level = logging.WARNING

        configure_logging(level, fmt)

        super()._configure_io(io)
        self._init_callback(io)


class Application:
    """The application object is the main hub for command-line interactions. It resolves the project root, loads the
    configuration and provides the base version file, the Git metadata and the manifest patcher to the commands that
    #ApplicationPlugin#s register on the #cleo application. Everything is loaded lazily and at most once."""

    #: The root directory of the project that is the subject of the current invocation.
    project_root: Once[Path]

    #: The configuration loaded once from `oamver.toml` or `pyproject.toml`.
    config: Once[OamverConfig]

    #: The Git metadata of the project, queried once per invocation.
    git_info: Once[GitInfo]

    #: The cleo application to which new commands can be registered via #ApplicationPlugin#s.
    cleo: CleoApplication

    def __init__(
        self,
        directory: Path | None = None,
        info_provider: VcsInfoProvider | None = None,
        name: str = "oamver",
        version: str = __version__,
    ) -> None:
        self._directory = directory or Path.cwd()
        self._info_provider = info_provider
        self._plugins_loaded = False
        self.project_root = Once(self._get_project_root)
        self.config = Once(self._get_config)
        self.git_info = Once(self._get_git_info)
        self.cleo = CleoApplication(self._cleo_init, name, version)

    def _get_project_root(self) -> Path:
        from oamver.configuration import find_project_root

        root = find_project_root(self._directory)
        logger.debug("Project root is <subj>%s</subj>", root)
        return root

    @property
    def configuration(self) -> Configuration:
        from oamver.configuration import Configuration

        return Configuration(self.project_root())

    def _get_config(self) -> OamverConfig:
        return self.configuration.load()

    def _get_git_info(self) -> GitInfo:
        from oamver.vcs import GitInfoProvider

        provider = self._info_provider or GitInfoProvider(self.project_root())
        info = provider.get_info()
        logger.debug("Git info: <val>%s</val>", info)
        return info

    @property
    def version_file(self) -> BaseVersionFile:
        from oamver.version import BaseVersionFile

        return BaseVersionFile(self.configuration.get_version_file(self.config()))

    @property
    def manifest(self) -> ManifestPatcher:
        from oamver.manifest import ManifestPatcher

        return ManifestPatcher(self.configuration.get_manifest(self.config()))

    def get_version_info(self, service: str, registry: str | None = None) -> VersionInfo:
        """Derives the version information of *service* from the persisted base version and the Git metadata. Raises
        a #MalformedBaseVersionError if the base version file cannot be parsed."""

        from oamver.version import VersionInfo

        return VersionInfo(service, self.version_file.load(), self.git_info(), registry or self.config().registry)

    def get_plugins(self) -> t.Iterator[tuple[str, t.Callable[[], type[ApplicationPlugin]]]]:
        """Yields the builtin application plugins and those registered in the `oamver.plugins.application`
        entrypoint group."""

        from oamver.ext.application import get_builtin_plugins
        from oamver.plugins import ApplicationPlugin, iter_entrypoints

        for plugin_type in get_builtin_plugins():
            yield plugin_type.name, (lambda plugin_type=plugin_type: plugin_type)  # type: ignore[misc]
        yield from iter_entrypoints(ApplicationPlugin)  # type: ignore[type-abstract]

    def load_plugins(self) -> None:
        """Loads all application plugins (see #ApplicationPlugin) and activates them. Calling it again has no
        effect."""

        if self._plugins_loaded:
            return
        self._plugins_loaded = True

        logger.debug("Loading application plugins")

        for plugin_name, loader in self.get_plugins():
            try:
                plugin = loader()(self)  # type: ignore[call-arg]
            except Exception:
                logger.exception("Could not load plugin <subj>%s</subj> due to an exception", plugin_name)
            else:
                plugin_config = plugin.load_configuration(self)
                plugin.activate(self, plugin_config)

    def _cleo_init(self, io: IO) -> None:
        self.load_plugins()

    def run(self) -> None:
        """Loads and activates application plugins and then invokes the CLI."""

        self.cleo.run()
