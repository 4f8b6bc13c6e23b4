"""Unit tests for process environment construction"""

from pathlib import Path

from pdfpoppler.common.config import PopplerConfig, configuration_resolve
from pdfpoppler.common.types import RuntimeContext
from pdfpoppler.process.environment import (
    ProcessEnvironmentBuilder,
    binaryRoot_get,
    searchPath_prepend,
)

ROOT = Path("/dist/poppler-24.08")
BIN_DIR = ROOT / "bin"


def builder_create(fs, loader, host_environ, platform="linux", serverless=False, env=None):
    context = RuntimeContext(is_serverless=serverless, is_ci=False, has_display=False)
    config = configuration_resolve(
        PopplerConfig(platform=platform, env=dict(env or {})), context, {}
    )
    return ProcessEnvironmentBuilder(config, fs, loader, host_environ)


class TestHelpers:
    """Test path helpers"""

    def test_search_path_prepend(self):
        """Entries go first; empty values produce no trailing separator"""
        assert searchPath_prepend("/usr/lib", "/dist/lib", ":") == "/dist/lib:/usr/lib"
        assert searchPath_prepend(None, "/dist/lib", ":") == "/dist/lib"
        assert searchPath_prepend("", "C:\\dist", ";") == "C:\\dist"

    def test_binary_root(self):
        """bin/ maps to its parent, anything else to itself"""
        assert binaryRoot_get(BIN_DIR) == ROOT
        assert binaryRoot_get(Path("/opt/poppler")) == Path("/opt/poppler")


class TestEnvironmentBuild:
    """Test the built environment"""

    def test_host_environment_is_subset(self, file_system_factory, package_loader_factory, host_environ):
        """Host variables survive unless overridden"""
        builder = builder_create(file_system_factory(), package_loader_factory(), host_environ)
        env = builder.environment_build(BIN_DIR)
        assert host_environ.items() <= env.items()

    def test_build_does_not_mutate_host(self, file_system_factory, package_loader_factory, host_environ):
        """The host mapping is copied, never written"""
        snapshot = dict(host_environ)
        fs = file_system_factory(existing=[ROOT / "lib"])
        builder_create(fs, package_loader_factory(), host_environ).environment_build(BIN_DIR)
        assert host_environ == snapshot

    def test_library_path_prepended(self, file_system_factory, package_loader_factory, host_environ):
        """An existing lib/ goes first in the loader search path"""
        host_environ["LD_LIBRARY_PATH"] = "/usr/local/lib"
        fs = file_system_factory(existing=[ROOT / "lib"])
        env = builder_create(fs, package_loader_factory(), host_environ).environment_build(BIN_DIR)
        assert env["LD_LIBRARY_PATH"] == "/dist/poppler-24.08/lib:/usr/local/lib"

    def test_library_variable_per_platform(self, file_system_factory, package_loader_factory, host_environ):
        """macOS uses DYLD_LIBRARY_PATH"""
        fs = file_system_factory(existing=[ROOT / "lib"])
        env = builder_create(fs, package_loader_factory(), host_environ, platform="darwin").environment_build(BIN_DIR)
        assert env["DYLD_LIBRARY_PATH"] == "/dist/poppler-24.08/lib"
        assert "LD_LIBRARY_PATH" not in env

    def test_missing_lib_leaves_path_alone(self, file_system_factory, package_loader_factory, host_environ):
        """No lib/ directory, no change"""
        env = builder_create(file_system_factory(), package_loader_factory(), host_environ).environment_build(BIN_DIR)
        assert "LD_LIBRARY_PATH" not in env

    def test_fontconfig_from_fonts_package(self, file_system_factory, package_loader_factory, module_factory, host_environ):
        """The fonts package contributes its fontconfig variables"""
        fonts = module_factory(
            "pdf_poppler_binaries_linux_fonts",
            Path("/dist"),
            fontconfig={"FONTCONFIG_PATH": "/dist/fonts", "FC_CACHEDIR": "/tmp/fontconfig-cache"},
        )
        loader = package_loader_factory({"pdf_poppler_binaries_linux_fonts": fonts})
        env = builder_create(file_system_factory(), loader, host_environ).environment_build(BIN_DIR)
        assert env["FONTCONFIG_PATH"] == "/dist/fonts"
        assert env["FC_CACHEDIR"] == "/tmp/fontconfig-cache"

    def test_fontconfig_cache_defaults_to_writable_dir(
        self, file_system_factory, package_loader_factory, module_factory, host_environ
    ):
        """A fonts package without a cache dir gets the writable default"""
        fonts = module_factory(
            "pdf_poppler_binaries_linux_fonts",
            Path("/dist"),
            fontconfig={"FONTCONFIG_FILE": "/dist/fonts/fonts.conf"},
        )
        loader = package_loader_factory({"pdf_poppler_binaries_linux_fonts": fonts})
        env = builder_create(file_system_factory(), loader, host_environ).environment_build(BIN_DIR)
        assert env["FONTCONFIG_FILE"] == "/dist/fonts/fonts.conf"
        assert env["FC_CACHEDIR"] == "/tmp/fontconfig-cache"

    def test_no_fonts_package_no_fontconfig(self, file_system_factory, package_loader_factory, host_environ):
        """Without a fonts package no fontconfig variable is added"""
        env = builder_create(file_system_factory(), package_loader_factory(), host_environ).environment_build(BIN_DIR)
        assert "FC_CACHEDIR" not in env

    def test_serverless_additions(self, file_system_factory, package_loader_factory, host_environ):
        """Serverless hosts get a fixed display, extension libs and keyboard data"""
        fs = file_system_factory(existing=[ROOT / "lib", Path("/opt/lib"), ROOT / "share" / "xkb"])
        env = builder_create(fs, package_loader_factory(), host_environ, serverless=True).environment_build(BIN_DIR)
        assert env["DISPLAY"] == ":99"
        assert env["XAUTHORITY"] == "/tmp/.Xauth"
        assert env["LD_LIBRARY_PATH"] == "/opt/lib:/dist/poppler-24.08/lib"
        assert env["XKB_CONFIG_ROOT"] == "/dist/poppler-24.08/share/xkb"

    def test_configuration_env_applied_last(self, file_system_factory, package_loader_factory, host_environ):
        """Configured variables override everything else"""
        builder = builder_create(
            file_system_factory(),
            package_loader_factory(),
            host_environ,
            serverless=True,
            env={"DISPLAY": ":5", "LANG": "de_DE.UTF-8"},
        )
        env = builder.environment_build(BIN_DIR)
        assert env["DISPLAY"] == ":5"
        assert env["LANG"] == "de_DE.UTF-8"
