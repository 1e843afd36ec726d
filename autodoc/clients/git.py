"""Local git repository reader: the source collaborator of the documentation agent.

All repository access goes through the ``git`` executable with the
repository as working directory. Every path and commit id that reaches a
git command line is validated first.
"""

import logging
import re
import subprocess
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath
from typing import Iterable, List, Optional

from autodoc.exceptions import (
    CommitNotFoundError,
    InvalidPathError,
    InvalidReferenceError,
    SourceFileNotFoundError,
)

logger = logging.getLogger(__name__)

COMMIT_ID_PATTERN = re.compile(r"^[0-9a-f]{5,40}$")
_PATH_PATTERN = re.compile(r"^[0-9A-Za-z._/\-]+$")

GIT_TIMEOUT = 30
_LOG_FORMAT = "--pretty=format:%H|%an|%ad|%s"

JS_EXTENSIONS = (".ts", ".tsx", ".js", ".jsx")
ALIAS_ROOTS = ("", "src", "app", "components")


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------

def validate_commit_id(commit_id: Optional[str], placeholders: Iterable[str] = ()) -> str:
    """Return *commit_id* unchanged, or raise InvalidReferenceError.

    Rejects empty values, known placeholder strings and anything that is not
    exactly 5-40 lowercase hex characters. Surrounding whitespace is not
    trimmed; it fails the format check like any other stray character.
    """
    value = commit_id or ""
    if not value:
        raise InvalidReferenceError(value, "Empty commit ID")
    if value in set(placeholders):
        raise InvalidReferenceError(value, "Placeholder commit ID")
    if not COMMIT_ID_PATTERN.fullmatch(value):
        raise InvalidReferenceError(value)
    return value


def validate_path(path: str) -> str:
    """Return *path* normalized to a repository-relative POSIX path."""
    value = (path or "").strip()
    if value.startswith("./"):
        value = value[2:]
    if not value or ".." in value or not _PATH_PATTERN.match(value):
        raise InvalidPathError(path)
    return value.lstrip("/")


# ---------------------------------------------------------------------------
# Change classification
# ---------------------------------------------------------------------------

# Added lines that usually mean behaviour changed rather than formatting,
# comments or imports.
_LOGIC_PATTERNS = [
    re.compile(r"^\+\s*(?:export\s+)?(?:async\s+)?function\s+\w+\s*\(", re.M),
    re.compile(r"^\+\s*(?:async\s+)?def\s+\w+\s*\(", re.M),
    re.compile(r"^\+\s*\w+\s*\([^)]*\)\s*\{", re.M),
    re.compile(r"^\+\s*(?:if|elif|else|switch|case|while|for|match)\b", re.M),
    re.compile(r"^\+\s*(?:return|raise|throw)\b", re.M),
    re.compile(r"^\+\s*[\w.]+\s*=\s*(?:[^;\n]*[+\-*/&|!?:<>]|function|\([^)]*\)\s*=>|lambda)", re.M),
    re.compile(r"^\+\s*export\s+const\s+\w+\s*=", re.M),
    re.compile(r"^\+\s*[A-Z][A-Z0-9_]+\s*=", re.M),
    re.compile(r"^\+.*\b(?:query|select|insert|update|delete|findOne|findById|save|create)\s*\(", re.M | re.I),
    re.compile(r"^\+.*\b(?:setState|dispatch|useReducer|useState)\b", re.M),
]

_DESCRIPTIONS = [
    (re.compile(r"^\+\s*(?:if|elif)\b", re.M), "Added conditional logic"),
    (re.compile(r"^\+\s*(?:for|while)\b", re.M), "Added loop or iteration"),
    (re.compile(r"^\+\s*(?:export\s+)?(?:async\s+)?(?:function|def)\s+\w+\s*\(", re.M),
     "Added or modified function implementation"),
    (re.compile(r"^\+\s*(?:export\s+const\s+\w+|[A-Z][A-Z0-9_]+)\s*=", re.M),
     "Modified business constants or configuration"),
    (re.compile(r"^\+\s*(?:switch|match)\b", re.M), "Changed switch statement or case handling"),
    (re.compile(r"^\+\s*(?:try\s*\{|try:|except\b|catch\b)", re.M), "Added error handling logic"),
    (re.compile(r"^\+\s*[\w.]+\s*=\s*(?:\([^)]*\)\s*=>|lambda)", re.M),
     "Modified function implementation or callback"),
]


def _added_lines(patch: str) -> str:
    return "\n".join(
        line for line in patch.splitlines()
        if line.startswith("+") and not line.startswith("+++")
    )


def is_logic_change(patch: str) -> bool:
    """Heuristic: does *patch* add lines that change business logic?"""
    added = _added_lines(patch)
    return any(p.search(added) for p in _LOGIC_PATTERNS)


def describe_change(patch: str, logic_change: Optional[bool] = None) -> str:
    """One-line human description of what *patch* changes."""
    if logic_change is None:
        logic_change = is_logic_change(patch)
    if not logic_change:
        return "Minor changes (documentation, formatting, or imports)"
    added = _added_lines(patch)
    for pattern, description in _DESCRIPTIONS:
        if pattern.search(added):
            return description
    return "Modified business logic implementation"


# ---------------------------------------------------------------------------
# Import extraction
# ---------------------------------------------------------------------------

_JS_IMPORT = re.compile(r"""import\s+(?:[\w*\s{},]*?\s+from\s+)?['"]([^'"]+)['"]""")
_JS_REQUIRE = re.compile(r"""require\s*\(\s*['"]([^'"]+)['"]\s*\)""")
_PY_FROM = re.compile(r"^[ \t]*from[ \t]+(\.*)([\w.]*)[ \t]+import[ \t]+(\([^)]*\)|[\w \t,*]+)", re.M)
_PY_IMPORT = re.compile(r"^[ \t]*import[ \t]+([\w.]+(?:[ \t]*,[ \t]*[\w.]+)*)", re.M)


def extract_js_imports(content: str) -> List[str]:
    """Module specifiers of ``import … from`` and ``require()`` statements, in order."""
    found: List[str] = []
    for pattern in (_JS_IMPORT, _JS_REQUIRE):
        for spec in pattern.findall(content):
            if spec not in found:
                found.append(spec)
    return found


# ---------------------------------------------------------------------------
# Data
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class CommitInfo:
    id: str
    author: str
    date: str
    message: str

    def to_dict(self) -> dict:
        return {"id": self.id, "author": self.author, "date": self.date, "message": self.message}


@dataclass(frozen=True)
class HistoryEntry(CommitInfo):
    is_logic_change: bool = False
    description: str = ""

    def to_dict(self) -> dict:
        return {
            **super().to_dict(),
            "is_logic_change": self.is_logic_change,
            "description": self.description,
        }


@dataclass(frozen=True)
class CommitDiff:
    commit_id: str
    patch_text: str
    changed_files: List[str] = field(default_factory=list)


def _parse_log(output: str) -> List[CommitInfo]:
    commits = []
    for line in output.splitlines():
        parts = line.split("|", 3)
        if len(parts) == 4:
            commits.append(CommitInfo(*parts))
    return commits


# ---------------------------------------------------------------------------
# Reader
# ---------------------------------------------------------------------------

class GitSourceReader:
    """Read files, diffs and history from a local git repository.

    Stateless apart from configuration, so one instance is shared by
    concurrent tasks.
    """

    def __init__(
        self,
        repo_path: str = ".",
        supported_extensions: Iterable[str] = (".ts", ".tsx", ".js", ".jsx", ".py"),
        excluded_dirs: Iterable[str] = ("node_modules", ".git"),
        placeholder_commit_ids: Iterable[str] = (),
    ):
        self.repo_path = Path(repo_path).resolve()
        self.supported_extensions = tuple(supported_extensions)
        self.excluded_dirs = tuple(excluded_dirs)
        self.placeholder_commit_ids = frozenset(placeholder_commit_ids)

    def _git(self, *args: str, check: bool = True) -> subprocess.CompletedProcess:
        return subprocess.run(
            ["git", *args],
            cwd=self.repo_path,
            capture_output=True,
            text=True,
            timeout=GIT_TIMEOUT,
            check=check,
        )

    def _resolve_commit(self, commit_id: str) -> str:
        commit_id = validate_commit_id(commit_id, self.placeholder_commit_ids)
        result = self._git("rev-parse", "--verify", "--quiet", f"{commit_id}^{{commit}}", check=False)
        if result.returncode != 0:
            raise CommitNotFoundError(commit_id)
        return commit_id

    # ----- files -----------------------------------------------------------

    def read_file(self, path: str, revision: Optional[str] = None) -> str:
        """Content of *path* in the working tree, or at *revision*."""
        path = validate_path(path)
        if revision:
            revision = self._resolve_commit(revision)
            result = self._git("show", f"{revision}:{path}", check=False)
            if result.returncode != 0:
                raise SourceFileNotFoundError(path, revision)
            return result.stdout

        full_path = self.repo_path / path
        if not full_path.is_file():
            raise SourceFileNotFoundError(path)
        return full_path.read_text(encoding="utf-8", errors="replace")

    def exists(self, path: str) -> bool:
        return (self.repo_path / path).is_file()

    def should_document(self, path: str) -> bool:
        """Supported extension and not inside an excluded directory."""
        parts = PurePosixPath(path).parts
        if any(part in self.excluded_dirs for part in parts[:-1]):
            return False
        return path.endswith(self.supported_extensions)

    def documentable_files(self, paths: Iterable[str]) -> List[str]:
        return [p for p in paths if self.should_document(p)]

    def list_files(self, directory: str = "") -> List[str]:
        """Tracked files under *directory*, documentable ones only."""
        args = ["ls-files"]
        if directory and directory not in (".", "./"):
            args += ["--", validate_path(directory)]
        result = self._git(*args)
        return self.documentable_files(line for line in result.stdout.splitlines() if line)

    # ----- commits ---------------------------------------------------------

    def head_commit(self) -> str:
        return self._git("rev-parse", "HEAD").stdout.strip()

    def get_commit_info(self, commit_id: str) -> CommitInfo:
        commit_id = self._resolve_commit(commit_id)
        result = self._git("log", "-n", "1", _LOG_FORMAT, "--date=iso", commit_id)
        commits = _parse_log(result.stdout)
        if not commits:
            raise CommitNotFoundError(commit_id)
        return commits[0]

    def recent_commits(self, count: int = 5) -> List[CommitInfo]:
        result = self._git("log", "-n", str(count), _LOG_FORMAT, "--date=iso")
        return _parse_log(result.stdout)

    def changed_files(self, commit_id: str) -> List[str]:
        commit_id = self._resolve_commit(commit_id)
        result = self._git("show", "--name-only", "--pretty=format:", commit_id)
        return [line for line in result.stdout.splitlines() if line.strip()]

    def diff(self, commit_id: str) -> CommitDiff:
        """Unified diff of *commit_id* against its parent, plus the files it touched."""
        commit_id = self._resolve_commit(commit_id)
        patch = self._git("show", "--patch", "--unified=3", commit_id).stdout
        return CommitDiff(commit_id=commit_id, patch_text=patch, changed_files=self.changed_files(commit_id))

    def get_history(self, path: str, limit: int = 15) -> List[HistoryEntry]:
        """Commits touching *path*, newest first, each classified as logic change or not."""
        path = validate_path(path)
        result = self._git("log", "-n", str(limit), _LOG_FORMAT, "--date=iso", "--", path)

        entries = []
        for commit in _parse_log(result.stdout):
            shown = self._git("show", "--unified=3", "--pretty=format:", commit.id, "--", path, check=False)
            if shown.returncode != 0:
                logger.warning("Skipping history entry %s for %s", commit.id[:8], path)
                continue
            logic = is_logic_change(shown.stdout)
            entries.append(HistoryEntry(
                id=commit.id,
                author=commit.author,
                date=commit.date,
                message=commit.message,
                is_logic_change=logic,
                description=describe_change(shown.stdout, logic),
            ))
        return entries

    # ----- dependencies ----------------------------------------------------

    def list_internal_dependencies(self, path: str) -> List[str]:
        """Repository files *path* imports, directly or transitively.

        Direct dependencies come first, in import order. Third-party imports
        and unresolvable specifiers are dropped; import cycles terminate.
        """
        path = validate_path(path)
        visited = {path}
        found: List[str] = []
        self._collect_dependencies(path, visited, found)
        return found

    def _collect_dependencies(self, path: str, visited: set, found: List[str]) -> None:
        try:
            content = self.read_file(path)
        except SourceFileNotFoundError:
            return

        direct = [d for d in self._direct_dependencies(path, content) if d not in visited]
        for dep in direct:
            visited.add(dep)
            found.append(dep)
        for dep in direct:
            self._collect_dependencies(dep, visited, found)

    def _direct_dependencies(self, path: str, content: str) -> List[str]:
        if path.endswith(JS_EXTENSIONS):
            specs = extract_js_imports(content)
            resolved = [self._resolve_js(path, spec) for spec in specs]
        elif path.endswith(".py"):
            resolved = self._resolve_python_imports(path, content)
        else:
            return []

        deps: List[str] = []
        for dep in resolved:
            if dep and dep != path and dep not in deps:
                deps.append(dep)
        return deps

    def _first_existing(self, candidates: Iterable[PurePosixPath]) -> Optional[str]:
        for candidate in candidates:
            text = str(candidate)
            if text.startswith("..") or text.startswith("/"):
                continue
            if self.exists(text):
                return text
        return None

    def _js_candidates(self, base: PurePosixPath) -> List[PurePosixPath]:
        candidates = []
        if base.suffix in JS_EXTENSIONS:
            candidates.append(base)
        candidates += [base.with_name(base.name + ext) for ext in JS_EXTENSIONS]
        candidates += [base / f"index{ext}" for ext in JS_EXTENSIONS]
        return candidates

    def _resolve_js(self, importer: str, spec: str) -> Optional[str]:
        if spec.startswith("@/"):
            rest = spec[2:]
            candidates: List[PurePosixPath] = []
            for root in ALIAS_ROOTS:
                candidates += self._js_candidates(PurePosixPath(root, rest) if root else PurePosixPath(rest))
            return self._first_existing(candidates)
        if spec.startswith("./") or spec.startswith("../"):
            base = _normalize(PurePosixPath(importer).parent / spec)
            if base is None:
                return None
            return self._first_existing(self._js_candidates(base))
        return None

    def _python_module(self, module: PurePosixPath) -> Optional[str]:
        candidates = [module.with_name(module.name + ".py"), module / "__init__.py"]
        candidates += [PurePosixPath("src", c) for c in list(candidates)]
        return self._first_existing(candidates)

    def _resolve_python_imports(self, importer: str, content: str) -> List[str]:
        resolved: List[Optional[str]] = []
        package = PurePosixPath(importer).parent

        for dots, module, names in _PY_FROM.findall(content):
            base = package if dots else PurePosixPath()
            for _ in range(len(dots) - 1):
                base = base.parent
            if module:
                base = base.joinpath(*module.split("."))
            # "from pkg import mod" may name a submodule rather than an attribute.
            imported = [n.split()[0] for n in names.strip("()").split(",") if n.split()]
            submodules = [self._python_module(base / name) for name in imported if name != "*"]
            if any(submodules):
                resolved.extend(submodules)
            elif str(base) != ".":
                resolved.append(self._python_module(base))

        for group in _PY_IMPORT.findall(content):
            for module in group.split(","):
                module = module.strip()
                if module:
                    resolved.append(self._python_module(PurePosixPath(*module.split("."))))
        return [r for r in resolved if r]


def _normalize(path: PurePosixPath) -> Optional[PurePosixPath]:
    """Collapse ``.`` and ``..`` segments; None if the path escapes the repository."""
    parts: List[str] = []
    for part in path.parts:
        if part == "..":
            if not parts:
                return None
            parts.pop()
        elif part != ".":
            parts.append(part)
    return PurePosixPath(*parts) if parts else None
