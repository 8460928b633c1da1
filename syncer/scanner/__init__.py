from syncer.scanner.gitignore_checker import GitignoreChecker
from syncer.scanner.scanner import DEFAULT_SKIP_DIRS, FileScanner

__all__ = ["FileScanner", "GitignoreChecker", "DEFAULT_SKIP_DIRS"]
