"""forge sync -- regenerates a workspace's Bazel files from its sources.

Quick usage::

    from forge.sync import Syncer

    syncer = Syncer.from_workspace("/path/to/workspace")
    report = syncer.sync()
    print(report.created_files)
"""

from forge.sync.build import BuildFileGenerator
from forge.sync.discover import PackageDiscoverer
from forge.sync.fixtures import FixtureResolver
from forge.sync.models import DiscoveredPackage, ImportSpec, SyncReport, WorkspaceModule
from forge.sync.modules import ModuleRegistry
from forge.sync.syncer import Syncer

__all__ = [
    "BuildFileGenerator",
    "DiscoveredPackage",
    "FixtureResolver",
    "ImportSpec",
    "ModuleRegistry",
    "PackageDiscoverer",
    "SyncReport",
    "Syncer",
    "WorkspaceModule",
]
