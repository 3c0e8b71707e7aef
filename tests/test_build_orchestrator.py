"""Tests for the build pipeline, driven through the recording executor."""

import logging

import pytest

from extbuild.environment import BuildEnvironment
from extbuild.host import PhpRuntime
from extbuild.orchestrator import BuildOrchestrator, BuildRequest
from cmdexec.testing import RecordingExecutor
from common.cancel import CancelToken
from errors import BuildStepError, ConfigurationError, DependencyError, OperationCancelled
from manifest.models import ConfigureOption, ExtensionDependency, Manifest, PhpRequirement
from ui.prompt import NonInteractivePrompt

from conftest import REDIS_PACKAGE_XML

ENVIRONMENT = BuildEnvironment(path="/usr/bin", php_config="/usr/bin/php-config")
PHP_VERSION = ["php", "-r", "echo json_encode(PHP_VERSION);"]


def _loaded(name):
    return ["php", "-r", f"echo json_encode(extension_loaded('{name}'));"]


class FakeRuntime:
    def __init__(self, version="8.2.1", enabled=("json",)):
        self.version = version
        self.enabled = set(enabled)

    def php_version(self):
        return self.version

    def extension_enabled(self, name):
        return name in self.enabled


@pytest.fixture
def source_dir(tmp_path):
    (tmp_path / "package.xml").write_bytes(REDIS_PACKAGE_XML)
    return tmp_path


def _orchestrator(executor, runtime=None, environment=ENVIRONMENT, **kwargs):
    return BuildOrchestrator(
        executor=executor,
        prompt=NonInteractivePrompt(),
        runtime=runtime if runtime is not None else FakeRuntime(),
        environment=environment,
        **kwargs,
    )


def _build_commands(executor):
    return [argv for argv in executor.executed_argv() if argv[0] != "php"]


class TestBuildPipeline:
    """Command sequence of a full build."""

    def test_full_pipeline_with_host_checks(self, source_dir):
        """redis with --enable-redis-lzf installs into /installdir."""
        executor = RecordingExecutor()
        executor.fake_on(PHP_VERSION, stdout='"8.2.1"')
        executor.fake_on(_loaded("json"), stdout="true")
        executor.fake_on(_loaded("igbinary"), stdout="false")
        executor.fake_on(_loaded("msgpack"), stdout="true")
        orchestrator = _orchestrator(executor, runtime=PhpRuntime(executor))
        request = BuildRequest(
            source_dir=str(source_dir),
            install_dir="/installdir",
            configure_args=["--enable-redis-lzf"],
            cleanup=True,
        )

        manifest = orchestrator.build(request)

        assert manifest.name == "redis"
        assert executor.executed_argv() == [
            PHP_VERSION,
            _loaded("json"),
            _loaded("igbinary"),
            _loaded("msgpack"),
            ["phpize"],
            [
                "./configure",
                "--enable-redis-lzf",
                "--enable-redis-igbinary=no",
                "--enable-redis-zstd=no",
                "--with-php-config=/usr/bin/php-config",
            ],
            ["make"],
            ["make", "INSTALL_ROOT=/installdir", "install"],
            ["make", "clean"],
        ]
        assert request.configure_args == [
            "--enable-redis-lzf",
            "--enable-redis-igbinary=no",
            "--enable-redis-zstd=no",
        ]

    def test_steps_run_in_source_dir_with_environment_overlay(self, source_dir):
        executor = RecordingExecutor()
        _orchestrator(executor).build(BuildRequest(source_dir=str(source_dir)))

        build_steps = [e for e in executor.executions if e.program != "php"]
        assert build_steps
        for execution in build_steps:
            assert execution.cwd == str(source_dir)
            assert execution.env == ENVIRONMENT.as_env()

    def test_without_install_dir_or_cleanup(self, source_dir):
        executor = RecordingExecutor()
        _orchestrator(executor).build(BuildRequest(source_dir=str(source_dir), cleanup=False))

        commands = _build_commands(executor)
        assert commands[-1] == ["make", "install"]
        assert ["make", "clean"] not in commands

    def test_parallel_hint_does_not_change_make(self, source_dir):
        executor = RecordingExecutor()
        _orchestrator(executor).build(BuildRequest(source_dir=str(source_dir), parallel=4))

        assert ["make"] in _build_commands(executor)
        assert not any(arg.startswith("-j") for argv in executor.executed_argv() for arg in argv)

    def test_existing_artifact_skips_compilation(self, source_dir):
        """A built modules/<name>.so goes straight to make install."""
        (source_dir / "modules").mkdir()
        (source_dir / "modules" / "redis.so").write_bytes(b"\x7fELF")
        executor = RecordingExecutor()

        _orchestrator(executor).build(BuildRequest(source_dir=str(source_dir), install_dir="/other-root"))

        assert _build_commands(executor) == [
            ["make", "INSTALL_ROOT=/other-root", "install"],
            ["make", "clean"],
        ]

    def test_artifact_is_named_after_provided_extension(self, tmp_path):
        """APCu compiles to modules/apcu.so, not modules/APCu.so."""
        (tmp_path / "package.xml").write_text(
            "<package><name>APCu</name><providesextension>apcu</providesextension></package>"
        )
        (tmp_path / "modules").mkdir()
        (tmp_path / "modules" / "apcu.so").write_bytes(b"\x7fELF")
        executor = RecordingExecutor()

        _orchestrator(executor).build(BuildRequest(source_dir=str(tmp_path), cleanup=False))

        assert _build_commands(executor) == [["make", "install"]]

    def test_failing_step_aborts_and_names_step(self, source_dir):
        executor = RecordingExecutor()
        executor.fake_on(["make"], stderr="library.c:1: error", exit_code=2)

        with pytest.raises(BuildStepError) as excinfo:
            _orchestrator(executor).build(BuildRequest(source_dir=str(source_dir)))

        assert excinfo.value.step == "make"
        assert excinfo.value.package == "redis"
        assert "failed to run make for redis" in str(excinfo.value)
        assert excinfo.value.__cause__.returncode == 2
        assert ["make", "install"] not in executor.executed_argv()

    def test_failing_configure(self, source_dir):
        executor = RecordingExecutor()
        executor.fake_on(["phpize"], exit_code=1)

        with pytest.raises(BuildStepError) as excinfo:
            _orchestrator(executor).build(BuildRequest(source_dir=str(source_dir)))

        assert excinfo.value.step == "phpize"
        assert _build_commands(executor) == [["phpize"]]

    def test_missing_php_config(self, source_dir):
        executor = RecordingExecutor()
        orchestrator = _orchestrator(executor, environment=BuildEnvironment(path="/usr/bin"))

        with pytest.raises(ConfigurationError):
            orchestrator.build(BuildRequest(source_dir=str(source_dir)))

        assert _build_commands(executor) == [["phpize"]]

    def test_cancelled_token_runs_no_build_step(self, source_dir):
        executor = RecordingExecutor()
        token = CancelToken()
        token.cancel("sibling failed")

        with pytest.raises(OperationCancelled):
            _orchestrator(executor).build(BuildRequest(source_dir=str(source_dir)), cancel=token)

        assert _build_commands(executor) == []

    def test_manifest_loader_receives_request_path(self, tmp_path):
        seen = []

        def loader(path):
            seen.append(path)
            return Manifest(name="apcu")

        executor = RecordingExecutor()
        _orchestrator(executor, manifest_loader=loader).build(
            BuildRequest(source_dir=str(tmp_path), manifest_path="/somewhere/package.xml")
        )

        assert seen == ["/somewhere/package.xml"]

    def test_manifest_load_failure_aborts(self, tmp_path):
        executor = RecordingExecutor()
        with pytest.raises(ConfigurationError):
            _orchestrator(executor).build(BuildRequest(source_dir=str(tmp_path)))
        assert executor.executions == []


class TestDependencyChecks:
    """PHP version range and extension dependencies."""

    def test_missing_required_extension(self, source_dir):
        executor = RecordingExecutor()
        orchestrator = _orchestrator(executor, runtime=FakeRuntime(enabled=()))

        with pytest.raises(DependencyError) as excinfo:
            orchestrator.build(BuildRequest(source_dir=str(source_dir)))

        assert "json" in str(excinfo.value)
        assert executor.executions == []

    def test_missing_optional_extension_is_informational(self, source_dir, caplog):
        executor = RecordingExecutor()
        orchestrator = _orchestrator(executor, runtime=FakeRuntime(enabled=("json",)))

        with caplog.at_level(logging.INFO, logger="extbuild.orchestrator"):
            orchestrator.build(BuildRequest(source_dir=str(source_dir)))

        assert "igbinary" in caplog.text
        assert ["phpize"] in executor.executed_argv()

    @pytest.mark.parametrize("version", ["7.3.33", "8.0.0", "8.5.0"])
    def test_php_version_out_of_range(self, source_dir, version):
        executor = RecordingExecutor()
        orchestrator = _orchestrator(executor, runtime=FakeRuntime(version=version))

        with pytest.raises(DependencyError) as excinfo:
            orchestrator.build(BuildRequest(source_dir=str(source_dir)))

        assert version in str(excinfo.value)

    def test_manifest_without_php_range_skips_version_lookup(self):
        runtime = FakeRuntime(version="not a version")
        manifest = Manifest(
            name="demo",
            php=PhpRequirement(),
            required_extensions=[ExtensionDependency("json")],
            configure_options=[ConfigureOption("enable-demo", "yes", "demo?")],
        )

        _orchestrator(RecordingExecutor(), runtime=runtime).check_dependencies(manifest)

    @pytest.mark.parametrize("version", [
        "8.1.2-1ubuntu2.14",
        "7.4.33-1+deb11u5",
        "8.2.7+extra",
        "8.3.0RC5",
        "8.4.1-dev",
    ])
    def test_vendor_suffixed_php_version_in_range(self, source_dir, version):
        executor = RecordingExecutor()
        orchestrator = _orchestrator(executor, runtime=FakeRuntime(version=version))

        orchestrator.build(BuildRequest(source_dir=str(source_dir)))

        assert ["phpize"] in executor.executed_argv()

    @pytest.mark.parametrize("version", ["8.0.0-1ubuntu1", "7.3.33-1+deb10u1", "unknown"])
    def test_vendor_suffixed_php_version_out_of_range(self, source_dir, version):
        executor = RecordingExecutor()
        orchestrator = _orchestrator(executor, runtime=FakeRuntime(version=version))

        with pytest.raises(DependencyError):
            orchestrator.build(BuildRequest(source_dir=str(source_dir)))

        assert executor.executions == []
