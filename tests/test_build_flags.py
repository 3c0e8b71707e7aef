"""Tests for configure flag reconciliation and the build environment overlay."""

from unittest.mock import MagicMock

from extbuild.environment import BuildEnvironment
from extbuild.flags import configured_flag_names, format_configure_flag, resolve_missing_flags
from constants import Constants
from manifest.models import ConfigureOption, Manifest
from ui.prompt import NonInteractivePrompt


class _ScriptedPrompt:
    def __init__(self, answers):
        self.answers = answers
        self.questions = []

    def ask(self, question, default):
        self.questions.append((question, default))
        return self.answers.get(question, default)


class TestConfigureFlags:
    """Missing configure options are prompted for and appended."""

    def test_configured_flag_names(self):
        assert configured_flag_names(["--enable-x=yes", "--with-y", "-z=1"]) == {"enable-x", "with-y", "z"}

    def test_format_configure_flag(self):
        assert format_configure_flag("with-y", "yes") == "--with-y"
        assert format_configure_flag("with-y", "autodetect") == "--with-y"
        assert format_configure_flag("with-y", "no") == "--with-y=no"
        assert format_configure_flag("with-y", "/usr/local") == "--with-y=/usr/local"
        assert format_configure_flag("enable-x", "yes") == "--enable-x=yes"

    def test_appends_only_missing_options(self):
        """enable-x already supplied; with-y defaults to yes and is emitted bare."""
        manifest = Manifest(
            name="demo",
            configure_options=[
                ConfigureOption("enable-x", default="no", prompt="enable x?"),
                ConfigureOption("with-y", default="yes", prompt="enable y?"),
            ],
        )
        prompt = _ScriptedPrompt({})
        args = ["--enable-x=yes"]

        added = resolve_missing_flags(manifest, args, prompt)

        assert added == ["--with-y"]
        assert args == ["--enable-x=yes", "--with-y"]
        assert prompt.questions == [("enable y?", "yes")]

    def test_redis_answers(self):
        manifest = Manifest(
            name="redis",
            configure_options=[
                ConfigureOption("enable-redis-igbinary", "no", "enable igbinary serializer support?"),
                ConfigureOption("enable-redis-lzf", "no", "enable lzf compression support?"),
                ConfigureOption("enable-redis-zstd", "no", "enable zstd compression support?"),
            ],
        )
        args = ["--enable-redis-lzf"]

        resolve_missing_flags(manifest, args, NonInteractivePrompt())

        assert args == ["--enable-redis-lzf", "--enable-redis-igbinary=no", "--enable-redis-zstd=no"]

    def test_nothing_to_ask(self):
        prompt = MagicMock()
        args = ["--enable-x"]
        manifest = Manifest(name="demo", configure_options=[ConfigureOption("enable-x", "no", "x?")])

        assert resolve_missing_flags(manifest, args, prompt) == []
        prompt.ask.assert_not_called()


class TestBuildEnvironment:
    """Compiler flag overrides and hardened defaults."""

    def test_defaults(self):
        env = BuildEnvironment.from_environ({"PATH": "/usr/bin", "PHP_CONFIG": "/usr/bin/php-config"})

        assert env.as_env() == {
            "PATH": "/usr/bin",
            "CFLAGS": "-fstack-protector-strong -fpic -fpie -O2 -D_LARGEFILE_SOURCE -D_FILE_OFFSET_BITS=64",
            "CPPFLAGS": "-fstack-protector-strong -fpic -fpie -O2 -D_LARGEFILE_SOURCE -D_FILE_OFFSET_BITS=64",
            "LDFLAGS": "-Wl,-O1 -Wl,--hash-style=both -pie",
        }
        assert env.php_config == "/usr/bin/php-config"

    def test_overrides(self):
        env = BuildEnvironment.from_environ({
            "PATH": "/opt/bin",
            "PHP_CFLAGS": "-O3",
            "PHP_CPPFLAGS": "-DNDEBUG",
            "PHP_LDFLAGS": "-Wl,-s",
            "PHP_CONFIG": "/opt/php/bin/php-config",
        })

        assert env.as_env() == {"PATH": "/opt/bin", "CFLAGS": "-O3", "CPPFLAGS": "-DNDEBUG", "LDFLAGS": "-Wl,-s"}

    def test_empty_override_falls_back_to_default(self):
        env = BuildEnvironment.from_environ({"PATH": "/usr/bin", "PHP_CFLAGS": "", "PHP_CONFIG": "x"})
        assert env.cflags == Constants.DEFAULT_CFLAGS

    def test_php_config_looked_up_on_path(self, tmp_path):
        php_config = tmp_path / "php-config"
        php_config.write_text("#!/bin/sh\n")
        php_config.chmod(0o755)

        env = BuildEnvironment.from_environ({"PATH": str(tmp_path)})

        assert env.php_config == str(php_config)

    def test_php_config_missing(self, tmp_path):
        assert BuildEnvironment.from_environ({"PATH": str(tmp_path)}).php_config is None

    def test_only_path_is_inherited(self):
        env = BuildEnvironment.from_environ({"PATH": "/usr/bin", "HOME": "/root", "PHP_CONFIG": "x"})
        assert set(env.as_env()) == {"PATH", "CFLAGS", "CPPFLAGS", "LDFLAGS"}

    def test_unset_path(self):
        assert BuildEnvironment.from_environ({"PHP_CONFIG": "x"}).path == ""
