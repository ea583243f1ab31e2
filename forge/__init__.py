"""forge -- keeps a polyglot monorepo's Bazel build files in sync.

The workspace is described by ``forge.json``; ``forge sync`` rebuilds
MODULE.bazel and every BUILD.bazel from the projects and sources on disk.

Quick usage::

    from forge import SyncConfig, Syncer

    report = Syncer.from_workspace(".", SyncConfig(dry_run=True)).sync()
"""

__version__ = "0.1.0"

from forge.config import SyncConfig
from forge.errors import ForgeError
from forge.sync import SyncReport, Syncer
from forge.workspace import WorkspaceConfig, load_workspace

__all__ = [
    "ForgeError",
    "SyncConfig",
    "SyncReport",
    "Syncer",
    "WorkspaceConfig",
    "load_workspace",
]
