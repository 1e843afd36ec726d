"""Shared test fixtures for the AutoDoc test suite.

No test talks to a real reasoning engine, Confluence or git remote. The
orchestrator is driven by a scripted engine whose turns are listed up
front, against an in-memory page store and source reader.
"""

import os

# Test-safe configuration before any autodoc imports.
os.environ["LOG_FORMAT"] = "text"
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["LLM_MODEL"] = "gpt-4o-mini"
os.environ["LLM_API_KEY"] = ""
os.environ["CONFLUENCE_SPACE_ID"] = "DOCS"
os.environ["CONFLUENCE_PARENT_PAGE_ID"] = ""
os.environ["WEBHOOK_SECRET"] = ""

import itertools
from typing import Any, Callable, List, Optional, Union

import pytest

from autodoc.agent.circuit_breaker import reset_all
from autodoc.agent.executor import ActionExecutor
from autodoc.agent.orchestrator import DocumentationOrchestrator
from autodoc.agent.phases import PhasePlanner
from autodoc.agent.repair import PlaceholderSentinels
from autodoc.agent.session import ActionRequest, EngineTurn
from autodoc.clients.confluence import Page
from autodoc.clients.git import CommitDiff, CommitInfo, HistoryEntry
from autodoc.core.config import Settings
from autodoc.exceptions import PageNotFoundError, SourceFileNotFoundError, VersionConflictError

COMMIT = "3f2a9c1e"
HEAD = "9e8d7c6b5a4f3e2d1c0b9a8f7e6d5c4b3a2f1e0d"


# ---------------------------------------------------------------------------
# Scripted engine
# ---------------------------------------------------------------------------

_call_ids = itertools.count(1)


def req(name: str, **arguments: Any) -> ActionRequest:
    """One action request as the engine would send it."""
    return ActionRequest(call_id=f"call_{next(_call_ids)}", name=name, arguments=arguments)


def turn(*requests: ActionRequest, text: str = "") -> EngineTurn:
    return EngineTurn(text=text, requests=list(requests))


Step = Union[EngineTurn, Exception, Callable[[list], EngineTurn]]


class ScriptedEngine:
    """Returns pre-scripted turns in order; answers with plain text once exhausted.

    A step may be an ``EngineTurn``, an exception to raise, or a callable
    receiving the conversation messages.
    """

    def __init__(self, steps: Optional[List[Step]] = None):
        self.steps = list(steps or [])
        self.calls: list[dict] = []

    def complete(self, messages, tools, force_action=False):
        self.calls.append({
            "messages": [dict(m) for m in messages],
            "tool_names": [t["function"]["name"] for t in tools],
            "force_action": force_action,
        })
        if not self.steps:
            return EngineTurn(text="Done.")
        step = self.steps.pop(0)
        if isinstance(step, Exception):
            raise step
        if callable(step):
            return step(messages)
        return step

    def user_directives(self) -> List[str]:
        return [c["messages"][1]["content"] for c in self.calls]


# ---------------------------------------------------------------------------
# In-memory collaborators
# ---------------------------------------------------------------------------

class FakePageStore:
    def __init__(self, pages: Optional[List[Page]] = None):
        self.pages = {p.id: p for p in pages or []}
        self.calls: list[tuple] = []
        self._next_id = itertools.count(500001)

    def create_page(self, space_id, title, content, parent_id=None):
        self.calls.append(("create_page", space_id, title, parent_id))
        page_id = str(next(self._next_id))
        self.pages[page_id] = Page(page_id, title, 1, content)
        return page_id

    def update_page(self, page_id, title, content, version):
        self.calls.append(("update_page", page_id, title, version))
        current = self.pages.get(page_id)
        if current is None:
            raise PageNotFoundError(page_id)
        if version != current.version:
            raise VersionConflictError(page_id, version)
        self.pages[page_id] = Page(page_id, title, version + 1, content)
        return page_id

    def get_page(self, page_id):
        self.calls.append(("get_page", page_id))
        if page_id not in self.pages:
            raise PageNotFoundError(page_id)
        return self.pages[page_id]

    def find_page_by_title(self, space_id, title):
        self.calls.append(("find_page_by_title", space_id, title))
        for page in self.pages.values():
            if page.title == title:
                return page.id
        return None


class FakeSourceReader:
    def __init__(
        self,
        files: Optional[dict] = None,
        dependencies: Optional[dict] = None,
        history: Optional[List[HistoryEntry]] = None,
        diffs: Optional[dict] = None,
        head: str = HEAD,
    ):
        self.files = files or {}
        self.dependencies = dependencies or {}
        self.history = history or []
        self.diffs = diffs or {}
        self.head = head
        self.calls: list[tuple] = []

    def read_file(self, path, revision=None):
        self.calls.append(("read_file", path))
        if path not in self.files:
            raise SourceFileNotFoundError(path)
        return self.files[path]

    def list_internal_dependencies(self, path):
        self.calls.append(("list_internal_dependencies", path))
        return list(self.dependencies.get(path, []))

    def get_history(self, path, limit=15):
        self.calls.append(("get_history", path, limit))
        return self.history[:limit]

    def diff(self, commit_id):
        self.calls.append(("diff", commit_id))
        return self.diffs[commit_id]

    def documentable_files(self, paths):
        return [p for p in paths if p.endswith((".py", ".ts"))]

    def list_files(self, directory=""):
        self.calls.append(("list_files", directory))
        return [p for p in self.files if p.startswith(directory)]

    def head_commit(self):
        self.calls.append(("head_commit",))
        return self.head

    def recent_commits(self, count=5):
        return [CommitInfo(self.head, "dev", "2024-05-01", "latest")][:count]


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

ORDERS_SOURCE = '''from .pricing import total

def checkout(cart):
    if not cart:
        raise ValueError("empty cart")
    return total(cart)
'''


@pytest.fixture(autouse=True)
def _clean_breakers():
    reset_all()
    yield
    reset_all()


@pytest.fixture()
def settings():
    return Settings(
        confluence_space_id="DOCS",
        confluence_parent_page_id="",
        max_steps=10,
        log_format="text",
    )


@pytest.fixture()
def page_store():
    return FakePageStore([
        Page("983041", "Documentation: orders.py", 7, "<h1>Orders</h1>"),
    ])


@pytest.fixture()
def source_reader():
    return FakeSourceReader(
        files={
            "src/orders.py": ORDERS_SOURCE,
            "src/pricing.py": "def total(cart):\n    return sum(i.price for i in cart)\n",
        },
        dependencies={"src/orders.py": ["src/pricing.py"]},
        history=[
            HistoryEntry(COMMIT, "dev", "2024-05-01 10:00:00 +0000", "Reject empty carts",
                         is_logic_change=True, description="Added conditional logic"),
        ],
        diffs={
            COMMIT: CommitDiff(COMMIT, "+    if not cart:\n+        raise ValueError", ["src/orders.py"]),
            HEAD: CommitDiff(HEAD, "+# tidy", ["src/orders.py"]),
        },
    )


@pytest.fixture()
def make_orchestrator(settings, page_store, source_reader):
    """Build an orchestrator around a ScriptedEngine running *steps*."""

    def _make(steps, max_steps=None):
        engine = ScriptedEngine(steps)
        executor = ActionExecutor(
            page_store,
            source_reader,
            placeholder_commit_ids=settings.placeholder_commit_ids,
        )
        orchestrator = DocumentationOrchestrator(
            engine=engine,
            executor=executor,
            planner=PhasePlanner(max_steps or settings.max_steps),
            sentinels=PlaceholderSentinels.from_settings(settings),
            placeholder_commit_ids=frozenset(settings.placeholder_commit_ids),
        )
        return orchestrator, engine

    return _make
