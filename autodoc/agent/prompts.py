"""Prompt templates and pipeline constants for the documentation agent.

No runtime logic, pure data only. Templates use ``str.format`` fields and
are filled in by ``agent.phases`` and ``agent.orchestrator``.
"""

# ---------------------------------------------------------------------------
# Pipeline Constants
# ---------------------------------------------------------------------------

# Action results are serialized to JSON and cut to this many characters
# before being appended to the conversation.
ACTION_RESULT_TRUNCATION: int = 12_000

# Each retrieved result included in the Analysis digest is cut to this many
# characters. Analysis sees the digest instead of the raw conversation.
DIGEST_ENTRY_TRUNCATION: int = 4_000

# Content of each internal dependency returned by list-internal-dependencies.
DEPENDENCY_CONTENT_TRUNCATION: int = 3_000

# Diff text returned by diff-commit.
DIFF_TRUNCATION: int = 20_000

# Body of an existing page returned by get-page / find-page-by-title.
PAGE_CONTENT_TRUNCATION: int = 15_000

TRUNCATION_MARKER: str = "\n... [truncated]"


# ---------------------------------------------------------------------------
# System Directives
# ---------------------------------------------------------------------------

_BASE_ROLE: str = """\
You are an expert technical writer documenting source code for developers
and product owners. Use the available actions to read code, inspect its
history and publish documentation pages. Every page covers three areas:
Module Dependencies, Business Logic and Version History."""

GENERATE_SYSTEM_DIRECTIVE: str = _BASE_ROLE + """

TASK: Generate a new documentation page.

1. Call read-file for the file.
2. Call list-internal-dependencies for the file.
3. Call get-history for the file.
4. Write the documentation in markdown with the sections
   "Module Dependencies", "Business Logic" and "Version History".
   Version History lists commits that changed business logic, with their ids.
5. Call convert-to-markup with the markdown.
6. Call create-page with the converted content.

Use the exact action names. Finish each step before starting the next."""

UPDATE_SYSTEM_DIRECTIVE: str = _BASE_ROLE + """

TASK: Update an existing documentation page after a code change.

1. Retrieve the page: with a page id call get-page, otherwise call
   diff-commit first and then find-page-by-title for each affected file.
2. Always call diff-commit to see what changed. Call list-changed-files
   only when you need the documentable subset of the changed files.
3. Update the markdown: adjust Module Dependencies, explain the modified
   Business Logic and add the commit to Version History.
4. Call convert-to-markup with the updated markdown. REQUIRED.
5. Call update-page with page_id, title, content and version. REQUIRED.
   Use the page id, title and version returned by the lookup; never
   invent them.

An update is only complete when both convert-to-markup and update-page
have run successfully."""


# ---------------------------------------------------------------------------
# User Directives (Retrieval)
# ---------------------------------------------------------------------------

GENERATE_USER_DIRECTIVE: str = """\
Document the file `{file_path}`.

Start by calling read-file, list-internal-dependencies and get-history
(limit={history_limit}) with file_path="{file_path}". Document ALL internal
dependencies, not only third-party ones.

The page will be created in space "{space_id}" with the title "{title}"{parent_clause}."""

UPDATE_WITH_PAGE_USER_DIRECTIVE: str = """\
Update documentation page {page_id} for commit {commit_id}.

Start by calling get-page with page_id="{page_id}", then diff-commit with
commit_id="{commit_id}"."""

UPDATE_BY_COMMIT_USER_DIRECTIVE: str = """\
Update the documentation affected by commit {commit_id}.

Start by calling diff-commit with commit_id="{commit_id}". Then, for each
changed file, call find-page-by-title with space_id="{space_id}" and the
title "Documentation: <file name>"."""

PARENT_CLAUSE: str = " under parent page {parent_page_id}"


# ---------------------------------------------------------------------------
# Phase Continuations
# ---------------------------------------------------------------------------

RETRIEVAL_INSTRUCTION: str = """

Required actions for this step: {required}"""

RECOVERY_INSTRUCTION: str = """

You skipped required actions in the previous step. Call these actions now:
{missing}"""

ANALYSIS_RECOVERY_NOTE: str = """

Incorporate the additional data retrieved by the follow-up actions."""

ANALYSIS_DIGEST_HEADER: str = """

Retrieved data:"""

ANALYSIS_DIGEST_ENTRY: str = """
### {action_name} {arguments}
{result}"""

ANALYSIS_INSTRUCTION: str = """

Now analyze the retrieved data and write the complete documentation in
markdown. Do not call convert-to-markup or any page action yet."""

PUBLISH_INSTRUCTION: str = """

Now convert the markdown above to the page storage format and {verb}.

IMPORTANT: You MUST call these actions in order: {required}"""

PUBLISH_GENERATE_TARGET: str = """

Create the page with space_id="{space_id}", title="{title}"{parent_clause}."""

PUBLISH_PARENT_CLAUSE: str = ', parent_id="{parent_page_id}"'

PUBLISH_EXACT_VALUES: str = """

For the update-page call, use these EXACT values:
- page_id: "{page_id}"
- title: "{title}"
- version: {version}"""
