"""Application settings - single source of truth for fixed constants

This module provides a Settings class that consolidates:
1. Binary distribution layout (package names, directory patterns)
2. Virtual display constants (display id, launcher locations)
3. Process supervision tuning (chunk sizes, grace periods)

Per-instance configuration lives in ResolvedConfiguration, never here.

Usage:
    from pdfpoppler.common.settings import settings

    env["DISPLAY"] = settings.VIRTUAL_DISPLAY
    chunk = stdout.read(settings.READ_CHUNK_SIZE)
"""


class Settings:
    """Constants shared by every pdfpoppler component

    Values here are fixed properties of the supported binary distributions
    and of the headless hosts they run on. Nothing in this class depends on
    a particular wrapper instance, so any number of differently configured
    instances can share it.
    """

    # =========================================================================
    # Platforms and binary packages
    # =========================================================================

    SUPPORTED_PLATFORMS: tuple[str, ...] = ("linux", "darwin", "win32")
    """Platform ids, matching sys.platform values"""

    PLATFORM_PACKAGES: dict[str, tuple[str, ...]] = {
        "linux": (
            "pdf_poppler_binaries_linux_fonts",
            "pdf_poppler_binaries_aws_2",
            "pdf_poppler_binaries_linux",
        ),
        "darwin": ("pdf_poppler_binaries_darwin",),
        "win32": ("pdf_poppler_binaries_win32",),
    }
    """Default binary packages per platform, in resolution order

    The fonts-bundling Linux package comes first: without bundled fonts,
    text baked into forms renders invisible on hosts without system fonts.
    """

    FONTS_PACKAGE: str = "pdf_poppler_binaries_linux_fonts"
    """Package that ships fontconfig data next to the binaries"""

    PROBE_BINARY: str = "pdftocairo"
    """Executable whose presence marks a usable bin/ directory"""

    VERSION_DIR_PATTERN: str = r"^poppler-(\d+\.\d+)(-xvfb)?$"
    """Versioned distribution directory names (poppler-24.08, poppler-21.03-xvfb)"""

    LEGACY_DIRS_PREFER_DISPLAY: tuple[str, ...] = (
        "poppler-xvfb-latest",
        "poppler-latest",
        "poppler-0.51",
    )
    """Legacy layouts tried when the virtual display variant is preferred"""

    LEGACY_DIRS_PLAIN: tuple[str, ...] = (
        "poppler-latest",
        "poppler-xvfb-latest",
        "poppler-0.51",
        "poppler-0.66",
    )
    """Legacy layouts tried otherwise"""

    DISPLAY_DEPENDENT_TOOLS: frozenset[str] = frozenset({"pdftocairo"})
    """Tools that need a display connection merely to initialise"""

    INPUT_MARKER: str = "{input}"
    """Argument replaced by the PDF path, or by "-" when the PDF goes to stdin"""

    # =========================================================================
    # Environment construction
    # =========================================================================

    LIBRARY_PATH_VARIABLES: dict[str, str] = {
        "linux": "LD_LIBRARY_PATH",
        "darwin": "DYLD_LIBRARY_PATH",
        "win32": "PATH",
    }
    """Dynamic-library search variable per platform"""

    PLATFORM_EXTENSION_LIB: str = "/opt/lib"
    """Library directory of serverless extension layers"""

    FONT_CACHE_DIR: str = "/tmp/fontconfig-cache"
    """Writable fontconfig cache location on read-only hosts"""

    # =========================================================================
    # Virtual display
    # =========================================================================

    VIRTUAL_DISPLAY: str = ":99"
    """Display id shared by the launcher and the wrapped command"""

    XAUTHORITY_PATH: str = "/tmp/.Xauth"
    """X authority file used when no launcher script is available"""

    LAUNCHER_NAME: str = "xvfb-run"
    """File name of the bundled launcher script"""

    SYSTEM_LAUNCHER_PATHS: tuple[str, ...] = ("/opt/bin/xvfb-run", "/usr/bin/xvfb-run")
    """Well-known system launcher locations, searched after the bundled one"""

    SHELL_INTERPRETER: str = "/bin/bash"
    """Interpreter for bundled or line-ending-corrected launcher scripts"""

    VIRTUAL_SCREEN_ARGS: tuple[str, ...] = ("-a", "--server-args=-screen 0 1024x768x24")
    """Arguments passed to system launcher scripts"""

    # =========================================================================
    # Process supervision
    # =========================================================================

    DEFAULT_ENCODING: str = "utf-8"
    """Encoding used to decode diagnostic output"""

    DEFAULT_MAX_OUTPUT_BYTES: int = 5000 * 1024
    """Largest stdout accepted by a buffered run"""

    READ_CHUNK_SIZE: int = 64 * 1024
    """Upper bound for one stdout chunk and one stdin write"""

    TERMINATE_GRACE_SEC: float = 2.0
    """Time a terminated process gets before it is killed"""

    THREAD_JOIN_SEC: float = 5.0
    """Upper bound when joining helper threads during release"""


settings = Settings()
"""Global settings instance

Import this anywhere in the application:
    from pdfpoppler.common.settings import settings
"""
