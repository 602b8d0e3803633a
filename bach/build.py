"""Multi-realm build pipeline: assemble, compile main, compile test, package."""
from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from pathlib import Path
from typing import List, Sequence

from .context import Context
from .download import Downloader
from .modules import SystemModuleCatalog, find_external_module_names, find_system_module_names
from .project import Project, Realm
from .properties import Property
from .tools import ToolRunner, format_roots


class BuildStage(IntEnum):
    INIT = 0
    ASSEMBLE = 1
    COMPILE_MAIN = 2
    COMPILE_TEST = 3
    PACKAGE = 4
    DONE = 5


_COMPILE_STAGES = {
    "main": BuildStage.COMPILE_MAIN,
    "test": BuildStage.COMPILE_TEST,
}


@dataclass(slots=True)
class BuildStep:
    description: str
    command: Sequence[str]


class BuildPipeline:
    """Drive one build through its stages, strictly forward.

    Any tool reporting a non-zero exit code aborts the whole build.
    """

    def __init__(
        self,
        context: Context,
        *,
        project: Project | None = None,
        tools: ToolRunner | None = None,
        system_modules: SystemModuleCatalog | None = None,
    ) -> None:
        self._context = context
        self._console = context.console
        self.project = project or Project.from_context(context)
        self._tools = tools or ToolRunner(context)
        self._system_modules = system_modules or (lambda: find_system_module_names(context.runner))
        self.stage = BuildStage.INIT
        self.compiled: dict[str, List[str]] = {}

    def _advance(self, stage: BuildStage) -> None:
        if stage <= self.stage:
            raise RuntimeError(f"Build stage {stage.name} cannot follow {self.stage.name}")
        self.stage = stage

    def build(self) -> None:
        self._console.debug("build()")
        self.assemble()
        self.compile(self.project.main)
        self.compile(self.project.test)
        self.package()
        self._advance(BuildStage.DONE)
        self._console.info("Build successful.")

    def assemble(self) -> None:
        """Format sources and resolve external modules into the project cache.

        An external module without a ``module.<name>`` URI is reported and
        skipped; compilation will surface it later.
        """
        self._advance(BuildStage.ASSEMBLE)
        self._console.debug("assemble()")
        config = self._context.config
        sources = self._source_roots()

        if config.get_bool(Property.ASSEMBLE_FORMAT):
            format_roots(self._context, True, sources)

        external = find_external_module_names(sources, self._system_modules)
        self._console.info(f"External module names: {sorted(external)}")
        if not external:
            return

        downloader = Downloader.from_context(self._context)
        for name in sorted(external):
            uri = config.get(f"module.{name}")
            if not uri:
                self._console.error(f"External module not mapped: {name}")
                continue
            path = downloader.download(self.project.cached_modules, uri)
            self._console.info(f"Resolved {path}")

    def _source_roots(self) -> List[Path]:
        """Existing realm sources, dropping any nested inside another."""

        sources = [realm.source for realm in self.project.realms if realm.source.is_dir()]
        return [
            source
            for source in sources
            if not any(other != source and source.is_relative_to(other) for other in sources)
        ]

    def compile_steps(self, realm: Realm) -> List[BuildStep]:
        modules = realm.module_names() if realm.source.is_dir() else []
        if not modules:
            return []
        command = [
            "javac",
            "-d",
            str(realm.target),
            "--module-path",
            realm.module_path_string(),
            "--module-source-path",
            str(realm.source),
            "--module",
            ",".join(modules),
        ]
        return [BuildStep(description=f"Compiling {realm.name} modules: {modules}", command=command)]

    def compile(self, realm: Realm) -> None:
        stage = _COMPILE_STAGES.get(realm.name)
        if stage is None:
            raise ValueError(f"Unknown realm: {realm.name}")
        self._advance(stage)
        self._console.debug(f"{realm.name}.compile()")
        steps = self.compile_steps(realm)
        if not steps:
            self._console.info(f"No {realm.name} modules found, skipping compilation.")
            return
        realm.target.mkdir(parents=True, exist_ok=True)
        self._execute(steps)
        self.compiled[realm.name] = realm.module_names()

    def package_steps(self) -> List[BuildStep]:
        steps: List[BuildStep] = []
        version = self.project.version
        for realm in self.project.realms:
            for module in self.compiled.get(realm.name, []):
                archive = self.project.packaged_modules / f"{module}-{version}.jar"
                steps.append(
                    BuildStep(
                        description=f"Packaging {module}-{version}",
                        command=["jar", "--create", "--file", str(archive), "-C", str(realm.target / module), "."],
                    )
                )
        return steps

    def package(self) -> None:
        self._advance(BuildStage.PACKAGE)
        self._console.debug("package()")
        steps = self.package_steps()
        if steps:
            self.project.packaged_modules.mkdir(parents=True, exist_ok=True)
        self._execute(steps)

    def _execute(self, steps: Sequence[BuildStep]) -> None:
        for step in steps:
            self._console.info(step.description)
            self._tools.run_expect(0, *step.command)


__all__ = ["BuildPipeline", "BuildStage", "BuildStep"]
