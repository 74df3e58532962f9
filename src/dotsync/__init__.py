"""
dotsync - A template-driven dotfiles synchronizer.

dotsync renders a dotfiles template repository into a local Git-tracked
directory, backs up whatever already sits at each destination and links
the rendered files into place. Template updates are merged selectively so
local customizations survive.
"""

__version__ = "0.1.0"
__license__ = "GPL-3.0-or-later"

from .backup import backup_existing, list_backups, restore_backup
from .context import SyncContext
from .coordinator import init_local, resync_local, update_local
from .linker import check_links, install_link
from .resolver import resolve_managed_files
from .sync import run_sync, sync_files

__all__ = [
    "SyncContext",
    "resolve_managed_files",
    "backup_existing",
    "list_backups",
    "restore_backup",
    "install_link",
    "check_links",
    "sync_files",
    "run_sync",
    # Template update coordination
    "init_local",
    "update_local",
    "resync_local",
]
