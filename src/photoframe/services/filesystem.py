"""Local folder scanning for bulk imports."""

import os

from ..config import get_root_folder, get_valid_file_extensions
from ..error_handling import FileSystemError
from ..logging_config import get_logger
from ..models.media import Folder

logger = get_logger(__name__)


def is_hidden(name: str) -> bool:
    return name.startswith(".")


class FolderScanner:
    """Lists importable folders and files below a root directory."""

    def __init__(self, root_folder: str | None = None, valid_extensions: list[str] | None = None) -> None:
        self.root_folder = root_folder or get_root_folder()
        extensions = valid_extensions if valid_extensions is not None else get_valid_file_extensions()
        self.valid_extensions = {ext.lstrip(".").upper() for ext in extensions}

    def list_entries(self, path: str) -> list[str]:
        """
        Non-hidden children of ``path`` in the order the filesystem returns them.

        Raises:
            FileSystemError: If the directory cannot be read
        """
        try:
            names = os.listdir(path)
        except OSError as e:
            raise FileSystemError(f"Cannot read folder '{path}': {e}", path=path, original_exception=e) from e
        return [name for name in names if not is_hidden(name)]

    def is_folder(self, path: str, name: str) -> bool:
        return os.path.isdir(os.path.join(path, name))

    def is_valid_extension(self, name: str) -> bool:
        """Case-insensitive allow-list match; hidden files never qualify."""
        if is_hidden(name):
            return False
        _, ext = os.path.splitext(name)
        return bool(ext) and ext[1:].upper() in self.valid_extensions

    def count_items(self, path: str) -> int:
        """Recursive number of non-hidden files below ``path``."""
        count = 0
        for name in self.list_entries(path):
            if self.is_folder(path, name):
                count += self.count_items(os.path.join(path, name))
            else:
                count += 1
        return count

    def list_folders(self, root: str | None = None) -> list[Folder]:
        """
        Immediate non-hidden subdirectories of ``root`` with their recursive file counts.

        Raises:
            FileSystemError: If ``root`` cannot be read
        """
        root = root or self.root_folder
        folders = [
            Folder(name=name, full_path=os.path.join(root, name), item_count=self.count_items(os.path.join(root, name)))
            for name in self.list_entries(root)
            if self.is_folder(root, name)
        ]
        logger.debug("folders_listed", root=root, count=len(folders))
        return folders
