"""Unit tests for the Poppler wrapper instance"""

import io
import os
from pathlib import Path

import pytest

from pdfpoppler import Poppler, PopplerConfig
from pdfpoppler.common.errors import ConfigurationError, ExecutableNotFoundError, InvalidInputError
from pdfpoppler.inputs import BytesInput

LINUX_PACKAGE = "pdf_poppler_binaries_linux"

ARGS_OR_STDIN_TOOL = """
import sys
args = sys.argv[1:]
if "-" in args:
    sys.stdout.buffer.write(sys.stdin.buffer.read())
else:
    sys.stdout.write("\\n".join(args))
"""

posix_only = pytest.mark.skipif(os.name != "posix", reason="script tools need a shebang")


@pytest.fixture
def installed(distribution_factory, package_loader_factory, module_factory, tool_factory):
    """A linux package with poppler-24.08 whose pdfinfo echoes args or stdin"""
    root = distribution_factory("poppler-24.08", "poppler-21.03-xvfb")
    tool_factory(root / "poppler-24.08" / "bin", "pdfinfo", ARGS_OR_STDIN_TOOL)
    loader = package_loader_factory({LINUX_PACKAGE: module_factory(LINUX_PACKAGE, root)})
    return root, loader


def poppler_create(installed, host_environ, config=None, **kwargs):
    _root, loader = installed
    return Poppler(
        config or PopplerConfig(platform="linux"),
        environ=host_environ,
        package_loader=loader,
        **kwargs,
    )


class TestResolution:
    """Test construction-time resolution"""

    def test_resolves_once(self, installed, host_environ):
        """Binary directory, version and flags are fixed at construction"""
        root, _loader = installed
        poppler = poppler_create(installed, host_environ)
        assert poppler.binaryDirectory_get() == root / "poppler-24.08" / "bin"
        assert poppler.version_get() == "24.08"
        assert not poppler.bundledVirtualDisplay_has()
        assert not poppler.serverless_check()
        assert [e.version for e in poppler.versions_list()] == ["24.08", "21.03"]

    def test_environment_is_read_only(self, installed, host_environ):
        """The base environment cannot be changed after construction"""
        poppler = poppler_create(installed, host_environ)
        assert poppler.environment_get()["HOME"] == "/home/tester"
        with pytest.raises(TypeError):
            poppler.environment_get()["HOME"] = "/tmp"  # type: ignore[index]

    def test_instances_are_independent(self, installed, host_environ):
        """Differently configured instances coexist"""
        root, _loader = installed
        plain = poppler_create(installed, host_environ)
        xvfb = poppler_create(installed, host_environ, PopplerConfig(platform="linux", version="21.03"))
        assert plain.binaryDirectory_get() == root / "poppler-24.08" / "bin"
        assert xvfb.binaryDirectory_get() == root / "poppler-21.03-xvfb" / "bin"
        assert xvfb.bundledVirtualDisplay_has()

    def test_missing_version_fails_in_constructor(self, installed, host_environ):
        """Unsatisfiable requests fail before any process spawns"""
        with pytest.raises(ConfigurationError, match="24.08, 21.03"):
            poppler_create(installed, host_environ, PopplerConfig(platform="linux", version="99.99"))

    def test_no_package_installed(self, package_loader_factory, host_environ):
        """Without binaries construction fails with ExecutableNotFoundError"""
        with pytest.raises(ExecutableNotFoundError):
            Poppler(
                PopplerConfig(platform="linux"),
                environ=host_environ,
                package_loader=package_loader_factory(),
            )

    def test_config_file_from_environment(self, installed, host_environ, tmp_path):
        """POPPLER_CONFIG names the YAML file"""
        config_file = tmp_path / "poppler.yml"
        config_file.write_text("execution:\n  timeout_seconds: 7\n  env:\n    FC_DEBUG: '1'\n")
        host_environ["POPPLER_CONFIG"] = str(config_file)
        poppler = poppler_create(installed, host_environ)
        assert poppler.configuration_get().execution.timeout_s == 7
        assert poppler.environment_get()["FC_DEBUG"] == "1"

    def test_environment_overrides_select_version(self, installed, host_environ):
        """POPPLER_VERSION picks the version when the config does not"""
        host_environ["POPPLER_VERSION"] = "21.03"
        assert poppler_create(installed, host_environ).version_get() == "21.03"


class TestFactories:
    """Test preconfigured constructors"""

    def fake_fs(self, file_system_factory, bin_dir: Path):
        return file_system_factory(
            existing=[bin_dir, bin_dir / "pdftocairo", bin_dir / "pdfinfo"],
            texts={bin_dir / "xvfb-run": "#!/bin/bash\nexec \"$@\"\n"},
        )

    def test_serverless_instance_wraps_display_tools(self, file_system_factory, host_environ):
        """Serverless instances run pdftocairo through the bundled launcher"""
        bin_dir = Path("/fake/poppler-21.03-xvfb/bin")
        poppler = Poppler.serverlessInstance_create(
            PopplerConfig(platform="linux", binary_path=str(bin_dir)),
            environ=host_environ,
            file_system=self.fake_fs(file_system_factory, bin_dir),
        )
        assert poppler.serverless_check()
        assert poppler.configuration_get().prefer_virtual_display
        assert poppler.virtualDisplay_required()
        assert poppler.version_get() == "21.03"
        assert poppler.bundledVirtualDisplay_has()

        plan = poppler.plan_get("pdftocairo", ["-png", "in.pdf"])
        assert plan.wrapped.argv_get() == [
            "/bin/bash",
            str(bin_dir / "xvfb-run"),
            str(bin_dir / "pdftocairo"),
            "-png",
            "in.pdf",
        ]
        assert plan.env["DISPLAY"] == ":99"
        assert plan.binary_root == bin_dir.parent

        info_plan = poppler.plan_get("pdfinfo", ["in.pdf"])
        assert info_plan.wrapped.argv_get() == [str(bin_dir / "pdfinfo"), "in.pdf"]

    def test_ci_instance_respects_explicit_preference(self, file_system_factory, host_environ):
        """An explicit opt-out survives the CI factory"""
        bin_dir = Path("/fake/poppler-24.08/bin")
        poppler = Poppler.ciInstance_create(
            PopplerConfig(platform="linux", binary_path=str(bin_dir), prefer_virtual_display=False),
            environ=host_environ,
            file_system=self.fake_fs(file_system_factory, bin_dir),
        )
        assert poppler.configuration_get().is_ci
        assert not poppler.virtualDisplay_required()
        assert poppler.plan_get("pdftocairo").wrapped.launcher is None

    def test_binary_path_instance(self, file_system_factory, host_environ):
        """binaryPathInstance_create uses the given directory"""
        bin_dir = Path("/fake/custom/bin")
        poppler = Poppler.binaryPathInstance_create(
            bin_dir,
            PopplerConfig(platform="linux"),
            environ=host_environ,
            file_system=self.fake_fs(file_system_factory, bin_dir),
        )
        assert poppler.binaryDirectory_get() == bin_dir
        assert poppler.version_get() is None

    def test_missing_tool(self, file_system_factory, host_environ):
        """Tools absent from the directory raise ExecutableNotFoundError"""
        bin_dir = Path("/fake/custom/bin")
        poppler = Poppler.binaryPathInstance_create(
            bin_dir,
            PopplerConfig(platform="linux"),
            environ=host_environ,
            file_system=self.fake_fs(file_system_factory, bin_dir),
        )
        with pytest.raises(ExecutableNotFoundError, match="Poppler binary not found: pdftotext"):
            poppler.plan_get("pdftotext", [])


@posix_only
class TestToolExecution:
    """Test running tools end to end"""

    def test_path_input_replaces_marker(self, installed, host_environ, tmp_path):
        """The validated path replaces {input}"""
        pdf = tmp_path / "doc.pdf"
        pdf.write_bytes(b"%PDF-1.7")
        poppler = poppler_create(installed, host_environ)
        output = poppler.run("pdfinfo", ["-box", "{input}", "-f", "1"], pdf)
        assert output.decode().split("\n") == ["-box", str(pdf.resolve()), "-f", "1"]

    def test_path_input_appended_without_marker(self, installed, host_environ, tmp_path):
        """Without a marker the path goes last"""
        pdf = tmp_path / "doc.pdf"
        pdf.write_bytes(b"%PDF-1.7")
        output = poppler_create(installed, host_environ).run("pdfinfo", ["-box"], str(pdf))
        assert output.decode().split("\n") == ["-box", str(pdf.resolve())]

    def test_invalid_path_rejected_before_spawn(self, installed, host_environ, tmp_path):
        """Missing files never reach the tool"""
        with pytest.raises(InvalidInputError, match="not found"):
            poppler_create(installed, host_environ).run("pdfinfo", [], tmp_path / "missing.pdf")

    def test_bytes_input_goes_through_stdin(self, installed, host_environ):
        """In-memory PDFs are fed through stdin with '-'"""
        output = poppler_create(installed, host_environ).run("pdfinfo", ["{input}"], BytesInput(b"%PDF-data"))
        assert output == b"%PDF-data"

    def test_stream_input_and_streaming_output(self, installed, host_environ):
        """Streams in, chunks out"""
        payload = b"%PDF" + b"0123456789" * 20000
        poppler = poppler_create(installed, host_environ)
        with poppler.stream("pdfinfo", [], io.BytesIO(payload)) as stream:
            received = b"".join(stream)
        assert received == payload
