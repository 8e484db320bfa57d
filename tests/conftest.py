"""Shared fixtures: an in-memory repository provider and real Git remotes."""

import hashlib
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Dict, Iterable, List, Optional

import git
import pytest

from gitpoll.exceptions import RemoteBranchNotFoundError
from gitpoll.models import AuthConfig, Author, CommitInfo, PollConfig, TreeAction, TreeChange
from gitpoll.repository.provider import RepositoryProvider

BASE_TIME = datetime(2024, 1, 15, 10, 30, tzinfo=timezone.utc)


class FakeProvider(RepositoryProvider):
    """In-memory provider with a single linear remote branch.

    ``push`` adds commits to the remote; the clone only sees them after
    ``fetch`` and only moves on ``pull``.
    """

    def __init__(self, branch: str = "main") -> None:
        self.branch = branch
        self.commits: Dict[str, CommitInfo] = {}
        self.parents: Dict[str, Optional[str]] = {}
        self.trees: Dict[str, Dict[str, str]] = {}
        self.remote_head: Optional[str] = None
        self.fetched_head: Optional[str] = None
        self.local_head: Optional[str] = None
        self.calls: List[str] = []
        self.failures: Dict[str, Exception] = {}

        self.push({"README.md": "# Test Project\n", "f2.txt": "one\n"}, message="Initial commit")

    def push(
        self,
        writes: Optional[Dict[str, str]] = None,
        deletes: Iterable[str] = (),
        message: str = "Update",
    ) -> CommitInfo:
        tree = dict(self.trees[self.remote_head]) if self.remote_head else {}
        tree.update(writes or {})
        for path in deletes:
            del tree[path]

        n = len(self.commits)
        commit = CommitInfo(
            sha=hashlib.sha1(f"{n}:{message}".encode()).hexdigest(),
            when=BASE_TIME + timedelta(minutes=n),
            author=Author(name="Test User", email="test@example.com"),
            message=message,
        )
        self.commits[commit.sha] = commit
        self.parents[commit.sha] = self.remote_head
        self.trees[commit.sha] = tree
        self.remote_head = commit.sha
        return commit

    def _record(self, operation: str) -> None:
        self.calls.append(operation)
        if operation in self.failures:
            raise self.failures[operation]

    def clone(self, remote, branch, directory, auth):
        self._record("clone")
        if branch is not None and branch != self.branch:
            raise RemoteBranchNotFoundError(branch)
        self.local_head = self.fetched_head = self.remote_head
        for path, content in self.trees[self.local_head].items():
            target = Path(directory) / path
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(content)
        (Path(directory) / ".git").mkdir(exist_ok=True)
        (Path(directory) / ".git" / "HEAD").write_text(f"ref: refs/heads/{self.branch}\n")
        return self

    def fetch(self, handle, auth):
        self._record("fetch")
        self.fetched_head = self.remote_head

    def pull(self, handle, branch, auth, target=None):
        self._record("pull")
        self.local_head = target.sha if target is not None else self.fetched_head

    def resolve_head(self, handle):
        self._record("resolve_head")
        return self.commits[self.local_head]

    def resolve_remote_branch_head(self, handle, branch, auth):
        self._record("resolve_remote_branch_head")
        if branch != self.branch:
            raise RemoteBranchNotFoundError(branch)
        return self.commits[self.fetched_head]

    def current_branch(self, handle):
        return self.branch

    def first_parent(self, handle, commit):
        self._record("first_parent")
        parent = self.parents[commit.sha]
        return self.commits[parent] if parent else None

    def diff_trees(self, handle, from_commit, to_commit):
        self._record("diff_trees")
        before = self.trees[from_commit.sha]
        after = self.trees[to_commit.sha]
        changes = []
        for path, content in after.items():
            if path not in before:
                changes.append(TreeChange(action=TreeAction.INSERT, to_path=path))
            elif before[path] != content:
                changes.append(TreeChange(action=TreeAction.MODIFY, from_path=path, to_path=path))
        for path in before:
            if path not in after:
                changes.append(TreeChange(action=TreeAction.DELETE, from_path=path))
        return changes


@pytest.fixture
def fake_provider():
    """Create an in-memory provider with one commit on main."""
    return FakeProvider()


@pytest.fixture
def make_config(tmp_path):
    """Build PollConfigs that clone into a temporary directory."""

    def _make(**overrides) -> PollConfig:
        values = {
            "remote": "https://example.com/test/repo.git",
            "clone_directory": tmp_path / "clone",
            "auth": AuthConfig(username="user", password="secret"),
            "interval": 0.01,
        }
        values.update(overrides)
        return PollConfig(**values)

    return _make


class GitRemote:
    """A bare remote plus an author clone used to push new commits."""

    def __init__(self, root: Path) -> None:
        self.path = root / "remote.git"
        git.Repo.init(self.path, bare=True).git.symbolic_ref("HEAD", "refs/heads/main")

        self.author_path = root / "author"
        self.author = git.Repo.init(self.author_path)
        self.author.config_writer().set_value("user", "name", "Test User").release()
        self.author.config_writer().set_value("user", "email", "test@example.com").release()
        self.author.git.symbolic_ref("HEAD", "refs/heads/main")
        self.author.create_remote("origin", str(self.path))

    @property
    def url(self) -> str:
        return str(self.path)

    def push(
        self,
        writes: Optional[Dict[str, str]] = None,
        deletes: Iterable[str] = (),
        message: str = "Update",
    ) -> str:
        for path, content in (writes or {}).items():
            target = self.author_path / path
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(content)
        if writes:
            self.author.index.add(list(writes))
        if deletes:
            self.author.index.remove(list(deletes), working_tree=True)
        commit = self.author.index.commit(message)
        self.author.git.push("origin", self.author.active_branch.name)
        return commit.hexsha

    def switch(self, branch: str) -> None:
        """Check out branch in the author clone, creating it from HEAD if needed."""
        if branch in [head.name for head in self.author.heads]:
            self.author.heads[branch].checkout()
        else:
            self.author.create_head(branch).checkout()


@pytest.fixture
def git_remote(tmp_path):
    """Create a bare Git remote seeded with an initial commit on main."""
    remote = GitRemote(tmp_path)
    remote.push({"README.md": "# Test Project\n", "f2.txt": "one\n"}, message="Initial commit")
    return remote


@pytest.fixture
def git_config(tmp_path, git_remote):
    """PollConfig pointing at the temporary Git remote."""

    def _make(**overrides) -> PollConfig:
        values = {
            "remote": git_remote.url,
            "clone_directory": tmp_path / "clone",
            "auth": AuthConfig(username="user", password="secret"),
            "interval": 0.01,
        }
        values.update(overrides)
        return PollConfig(**values)

    return _make

