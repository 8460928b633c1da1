import os
from pathlib import Path
from typing import Iterable, List, Optional

from infra.logger import get_logger
from syncer.scanner.gitignore_checker import GitignoreChecker

log = get_logger("syncer.scanner")

DEFAULT_SKIP_DIRS = ("node_modules", ".git", "dist")


class FileScanner:
    """Lists the project files that take part in change tracking."""

    def __init__(
        self,
        project_root: Path,
        state_dir_name: str,
        extensions: Optional[Iterable[str]] = None,
        skip_dirs: Iterable[str] = DEFAULT_SKIP_DIRS,
    ):
        self.project_root = Path(project_root).resolve()
        self.extensions = frozenset(e.lower() for e in extensions) if extensions else None
        self.checker = GitignoreChecker(self.project_root, [*skip_dirs, state_dir_name])

    def accepts(self, relative_path: str) -> bool:
        path = Path(relative_path)
        if self.extensions is not None and path.suffix.lower() not in self.extensions:
            return False
        return not self.checker.should_ignore(self.project_root / path)

    def scan(self) -> List[str]:
        """Relative POSIX paths of all tracked files, sorted."""
        if not self.project_root.is_dir():
            raise FileNotFoundError(f"Project root does not exist: {self.project_root}")

        found: List[str] = []
        for root, dirs, files in os.walk(self.project_root):
            current_root = Path(root)
            self.checker.load_spec_for_dir(current_root)

            # pruning dirs in place stops os.walk from descending
            dirs[:] = [
                d for d in dirs
                if not self.checker.should_ignore(current_root / d, is_dir=True)
            ]

            for filename in files:
                file_path = current_root / filename
                if self.checker.should_ignore(file_path):
                    continue
                if self.extensions is not None and file_path.suffix.lower() not in self.extensions:
                    continue
                found.append(file_path.relative_to(self.project_root).as_posix())

        found.sort()
        log.info("scanner.completed", root=str(self.project_root), files=len(found))
        return found
