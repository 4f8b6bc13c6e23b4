"""Runtime detection and binary distribution resolution."""

from pdfpoppler.platform.catalog import VersionCatalog
from pdfpoppler.platform.context import context_detect
from pdfpoppler.platform.filesystem import FileSystem, LocalFileSystem
from pdfpoppler.platform.packages import ImportPackageLoader, PackageLoader
from pdfpoppler.platform.resolver import BinaryResolver, ExecutablePermissionFixer

__all__ = [
    "BinaryResolver",
    "ExecutablePermissionFixer",
    "FileSystem",
    "ImportPackageLoader",
    "LocalFileSystem",
    "PackageLoader",
    "VersionCatalog",
    "context_detect",
]
