"""Tests for the git source reader and its pure helpers.

Dependency resolution reads the working tree only, so it runs against a
file layout in tmp_path. Commands that need git are tested with
subprocess.run patched.
"""

import subprocess
from unittest.mock import patch

import pytest

from autodoc.clients.git import (
    GitSourceReader,
    describe_change,
    extract_js_imports,
    is_logic_change,
    validate_commit_id,
    validate_path,
)
from autodoc.exceptions import (
    CommitNotFoundError,
    InvalidPathError,
    InvalidReferenceError,
    SourceFileNotFoundError,
)

SHA_A = "3f2a9c1e" + "0" * 32
SHA_B = "9e8d7c6b" + "1" * 32


def _write(root, files):
    for path, content in files.items():
        target = root / path
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(content)


class FakeGit:
    """Stands in for subprocess.run; answers by git subcommand."""

    def __init__(self, known_commits=(SHA_A, SHA_B), outputs=None):
        self.known_commits = set(known_commits)
        self.outputs = outputs or {}
        self.commands = []

    def __call__(self, cmd, **kwargs):
        self.commands.append(cmd)
        args = cmd[1:]
        if args[0] == "rev-parse" and "--verify" in args:
            commit = args[-1].split("^")[0]
            known = any(c.startswith(commit) for c in self.known_commits)
            return subprocess.CompletedProcess(cmd, 0 if known else 1, stdout="", stderr="")
        key = next((k for k in self.outputs if all(part in args for part in k)), None)
        if key is None:
            return subprocess.CompletedProcess(cmd, 128, stdout="", stderr="fatal")
        return subprocess.CompletedProcess(cmd, 0, stdout=self.outputs[key], stderr="")


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


class TestValidateCommitId:

    @pytest.mark.parametrize("commit_id", ["3f2a9", "3f2a9c1e", SHA_A])
    def test_valid(self, commit_id):
        assert validate_commit_id(commit_id) == commit_id

    @pytest.mark.parametrize("commit_id", [
        None, "", "   ", "3f2a", "HEAD", "main", "3F2A9C1E", "a" * 41, "3f2a9c1e;rm",
        "  3f2a9c1e  ", "3f2a9c1e\n", "\t3f2a9c1e",
    ])
    def test_invalid(self, commit_id):
        with pytest.raises(InvalidReferenceError):
            validate_commit_id(commit_id)

    def test_placeholder_rejected(self):
        with pytest.raises(InvalidReferenceError, match="Placeholder"):
            validate_commit_id("[commit_id]", placeholders=["[commit_id]"])

    def test_hex_placeholder_rejected(self):
        with pytest.raises(InvalidReferenceError):
            validate_commit_id("abcdef", placeholders=["abcdef"])


class TestValidatePath:

    def test_leading_dot_slash_stripped(self):
        assert validate_path("./src/orders.py") == "src/orders.py"

    @pytest.mark.parametrize("path", ["", "../etc/passwd", "src/../../x.py", "src/a b.py", "src/$(rm -rf).py", "src/a;b.py"])
    def test_rejected(self, path):
        with pytest.raises(InvalidPathError):
            validate_path(path)


# ---------------------------------------------------------------------------
# Change classification
# ---------------------------------------------------------------------------


class TestChangeClassification:

    def test_conditional_is_logic(self):
        patch_text = "--- a/x.py\n+++ b/x.py\n+    if not cart:\n+        raise ValueError\n"
        assert is_logic_change(patch_text)
        assert describe_change(patch_text) == "Added conditional logic"

    def test_loop(self):
        assert describe_change("+    for item in cart:\n") == "Added loop or iteration"

    def test_function(self):
        assert describe_change("+def total(cart):\n") == "Added or modified function implementation"

    def test_constant(self):
        assert describe_change("+MAX_ITEMS = 50\n") == "Modified business constants or configuration"

    def test_comment_and_import_are_minor(self):
        patch_text = "+++ b/x.py\n+# explain checkout\n+import os\n-old = 1\n"
        assert not is_logic_change(patch_text)
        assert describe_change(patch_text) == "Minor changes (documentation, formatting, or imports)"

    def test_removed_lines_ignored(self):
        assert not is_logic_change("-    if not cart:\n-        return 0\n")

    def test_explicit_flag_respected(self):
        assert describe_change("+# note\n", logic_change=False).startswith("Minor changes")


# ---------------------------------------------------------------------------
# Import extraction and dependency resolution
# ---------------------------------------------------------------------------


class TestExtractJsImports:

    def test_import_forms(self):
        content = (
            "import { api } from './api'\n"
            'import Button from "@/components/Button"\n'
            "import React from 'react'\n"
            "const util = require('../util')\n"
            "import { api as again } from './api'\n"
        )
        assert extract_js_imports(content) == ["./api", "@/components/Button", "react", "../util"]


class TestInternalDependencies:

    def test_python_relative_absolute_and_transitive(self, tmp_path):
        _write(tmp_path, {
            "src/orders.py": "import os\nfrom .pricing import total\nfrom src.cart import Cart\n",
            "src/pricing.py": "from .tax import rate\n",
            "src/tax.py": "from .pricing import total\nrate = 0.2\n",
            "src/cart.py": "class Cart:\n    pass\n",
        })
        reader = GitSourceReader(str(tmp_path))
        assert reader.list_internal_dependencies("src/orders.py") == [
            "src/pricing.py", "src/cart.py", "src/tax.py",
        ]

    def test_python_submodule_import(self, tmp_path):
        _write(tmp_path, {
            "pkg/__init__.py": "",
            "pkg/main.py": "from . import utils\nfrom pkg import models\n",
            "pkg/utils.py": "",
            "pkg/models.py": "",
        })
        reader = GitSourceReader(str(tmp_path))
        assert reader.list_internal_dependencies("pkg/main.py") == ["pkg/utils.py", "pkg/models.py"]

    def test_javascript_relative_alias_and_index(self, tmp_path):
        _write(tmp_path, {
            "web/app.ts": (
                "import { api } from '@/lib/api'\n"
                "import Button from './components/Button'\n"
                "import React from 'react'\n"
            ),
            "src/lib/api.ts": "import { get } from '../util'\nexport const api = get\n",
            "web/components/Button/index.tsx": "export default function Button() {}\n",
            "src/util.js": "module.exports = {}\n",
        })
        reader = GitSourceReader(str(tmp_path))
        assert reader.list_internal_dependencies("web/app.ts") == [
            "src/lib/api.ts", "web/components/Button/index.tsx", "src/util.js",
        ]

    def test_import_cycle_terminates(self, tmp_path):
        _write(tmp_path, {
            "a.js": "import b from './b'\n",
            "b.js": "import a from './a'\n",
        })
        reader = GitSourceReader(str(tmp_path))
        assert reader.list_internal_dependencies("a.js") == ["b.js"]

    def test_escaping_import_dropped(self, tmp_path):
        _write(tmp_path, {"app.js": "import x from '../../outside'\n"})
        assert GitSourceReader(str(tmp_path)).list_internal_dependencies("app.js") == []

    def test_missing_file_has_no_dependencies(self, tmp_path):
        assert GitSourceReader(str(tmp_path)).list_internal_dependencies("nope.py") == []


# ---------------------------------------------------------------------------
# Reader
# ---------------------------------------------------------------------------


class TestReader:

    def test_read_working_tree(self, tmp_path):
        _write(tmp_path, {"src/orders.py": "x = 1\n"})
        assert GitSourceReader(str(tmp_path)).read_file("./src/orders.py") == "x = 1\n"

    def test_read_missing_file(self, tmp_path):
        with pytest.raises(SourceFileNotFoundError):
            GitSourceReader(str(tmp_path)).read_file("src/orders.py")

    def test_read_at_revision(self, tmp_path):
        git = FakeGit(outputs={(f"{SHA_A}:src/orders.py",): "old = 1\n"})
        with patch("autodoc.clients.git.subprocess.run", side_effect=git):
            content = GitSourceReader(str(tmp_path)).read_file("src/orders.py", revision=SHA_A)
        assert content == "old = 1\n"

    def test_read_at_revision_missing_file(self, tmp_path):
        with patch("autodoc.clients.git.subprocess.run", side_effect=FakeGit()):
            with pytest.raises(SourceFileNotFoundError):
                GitSourceReader(str(tmp_path)).read_file("src/orders.py", revision=SHA_A)

    def test_should_document(self, tmp_path):
        reader = GitSourceReader(str(tmp_path), supported_extensions=[".py", ".ts"], excluded_dirs=["node_modules"])
        assert reader.should_document("src/orders.py")
        assert not reader.should_document("README.md")
        assert not reader.should_document("node_modules/pkg/index.ts")

    def test_diff(self, tmp_path):
        git = FakeGit(outputs={
            ("--patch",): "+    if not cart:\n",
            ("--name-only",): "src/orders.py\nREADME.md\n\n",
        })
        with patch("autodoc.clients.git.subprocess.run", side_effect=git):
            diff = GitSourceReader(str(tmp_path)).diff("3f2a9c1e")
        assert diff.commit_id == "3f2a9c1e"
        assert diff.patch_text == "+    if not cart:\n"
        assert diff.changed_files == ["src/orders.py", "README.md"]

    def test_unknown_commit(self, tmp_path):
        with patch("autodoc.clients.git.subprocess.run", side_effect=FakeGit(known_commits=())):
            with pytest.raises(CommitNotFoundError):
                GitSourceReader(str(tmp_path)).diff("3f2a9c1e")

    def test_placeholder_commit_never_reaches_git(self, tmp_path):
        git = FakeGit()
        reader = GitSourceReader(str(tmp_path), placeholder_commit_ids=["deadbeef"])
        with patch("autodoc.clients.git.subprocess.run", side_effect=git):
            with pytest.raises(InvalidReferenceError):
                reader.diff("deadbeef")
        assert git.commands == []

    def test_history_classifies_each_commit(self, tmp_path):
        git = FakeGit(outputs={
            ("log", "--", "src/orders.py"): (
                f"{SHA_A}|dev|2024-05-02 10:00:00 +0000|Reject empty carts\n"
                f"{SHA_B}|dev|2024-05-01 09:00:00 +0000|Docs: fix | typo\n"
            ),
            (SHA_A, "--", "src/orders.py"): "+    if not cart:\n",
            (SHA_B, "--", "src/orders.py"): "+# typo\n",
        })
        with patch("autodoc.clients.git.subprocess.run", side_effect=git):
            history = GitSourceReader(str(tmp_path)).get_history("src/orders.py", limit=5)

        assert [h.id for h in history] == [SHA_A, SHA_B]
        assert history[0].is_logic_change
        assert history[0].description == "Added conditional logic"
        assert not history[1].is_logic_change
        assert history[1].message == "Docs: fix | typo"
        assert git.commands[0][:4] == ["git", "log", "-n", "5"]

    def test_head_commit(self, tmp_path):
        git = FakeGit(outputs={("rev-parse", "HEAD"): SHA_A + "\n"})
        with patch("autodoc.clients.git.subprocess.run", side_effect=git):
            assert GitSourceReader(str(tmp_path)).head_commit() == SHA_A

    def test_list_files_filters_documentable(self, tmp_path):
        git = FakeGit(outputs={("ls-files",): "src/orders.py\nsrc/README.md\nsrc/web/app.ts\n"})
        with patch("autodoc.clients.git.subprocess.run", side_effect=git):
            files = GitSourceReader(str(tmp_path)).list_files("src")
        assert files == ["src/orders.py", "src/web/app.ts"]
        assert git.commands[0] == ["git", "ls-files", "--", "src"]
