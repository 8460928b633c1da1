from pathlib import Path
from typing import Dict, Iterable

import pathspec

from infra.logger import get_logger

log = get_logger("syncer.scanner.gitignore")


class GitignoreChecker:
    """Matches paths against nested .gitignore files and a fixed set of skipped directory names."""

    def __init__(self, project_root: Path, skip_dirs: Iterable[str] = ()):
        self.project_root = Path(project_root).resolve()
        self.skip_dirs = frozenset(skip_dirs)
        # {directory: spec from its .gitignore}
        self.specs: Dict[Path, pathspec.PathSpec] = {}

    def load_spec_for_dir(self, dir_path: Path) -> None:
        gitignore_file = dir_path / ".gitignore"
        if not gitignore_file.is_file():
            return
        try:
            with open(gitignore_file, "r", encoding="utf-8") as f:
                self.specs[dir_path] = pathspec.PathSpec.from_lines(
                    pathspec.patterns.GitWildMatchPattern, f
                )
        except (OSError, UnicodeDecodeError) as e:
            log.warning("gitignore.load.failed", file=str(gitignore_file), error=str(e))

    def should_ignore(self, path: Path, is_dir: bool = False) -> bool:
        abs_path = path if path.is_absolute() else self.project_root / path

        rel_parts = abs_path.relative_to(self.project_root).parts if abs_path.is_relative_to(self.project_root) else abs_path.parts
        if any(part in self.skip_dirs for part in rel_parts):
            return True

        for gi_dir, spec in self.specs.items():
            if abs_path.is_relative_to(gi_dir):
                rel_path = abs_path.relative_to(gi_dir).as_posix()
                # directory patterns only match with a trailing slash
                if is_dir and not rel_path.endswith("/"):
                    rel_path += "/"
                if spec.match_file(rel_path):
                    return True
        return False
