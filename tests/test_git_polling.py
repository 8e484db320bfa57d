"""Tests against real Git repositories created with GitPython."""

from pathlib import Path

import git
import pytest

from gitpoll.exceptions import RemoteBranchNotFoundError, SetupError
from gitpoll.models import ChangeType, FileChange
from gitpoll.poller import Poller
from gitpoll.repository.auth import BasicAuth
from gitpoll.repository.git_provider import GitRepositoryProvider
from gitpoll.models import TreeAction, TreeChange

AUTH = BasicAuth("user", "secret")


@pytest.fixture
def provider():
    return GitRepositoryProvider()


@pytest.fixture
def clone(provider, git_remote, tmp_path):
    """Clone the remote with the GitPython provider."""
    return provider.clone(git_remote.url, "main", tmp_path / "clone", AUTH)


class TestGitRepositoryProvider:
    """Tests for GitRepositoryProvider."""

    def test_clone(self, clone, provider, git_remote):
        """Test cloning checks out the requested branch."""
        assert isinstance(clone, git.Repo)
        assert provider.current_branch(clone) == "main"
        assert provider.resolve_head(clone).summary == "Initial commit"
        assert clone.remote("origin").url == git_remote.url

    def test_clone_default_branch(self, provider, git_remote, tmp_path):
        """Test cloning without a branch uses the remote's default."""
        repo = provider.clone(git_remote.url, None, tmp_path / "default", AUTH)

        assert provider.current_branch(repo) == "main"

    def test_clone_opens_existing(self, clone, provider, git_remote, tmp_path):
        """Test cloning into an existing clone opens it instead of failing."""
        reopened = provider.clone(git_remote.url, "main", tmp_path / "clone", AUTH)

        assert Path(reopened.working_dir) == Path(clone.working_dir)

    def test_resolve_remote_branch_head(self, clone, provider, git_remote):
        """Test the remote head is found after a fetch."""
        sha = git_remote.push({"f1.txt": "new\n"}, message="Add f1")

        provider.fetch(clone, AUTH)
        remote_head = provider.resolve_remote_branch_head(clone, "main", AUTH)

        assert remote_head.sha == sha
        assert remote_head.author.email == "test@example.com"
        assert remote_head.when.utcoffset().total_seconds() == 0

    def test_fetch_up_to_date(self, clone, provider):
        """Test fetching with nothing new is not an error."""
        provider.fetch(clone, AUTH)
        provider.fetch(clone, AUTH)

    def test_unknown_remote_branch(self, clone, provider):
        """Test a missing branch is reported."""
        with pytest.raises(RemoteBranchNotFoundError):
            provider.resolve_remote_branch_head(clone, "does-not-exist", AUTH)

    def test_remote_head_is_fetched_state(self, clone, provider, git_remote):
        """Test the remote head only moves when the clone fetches."""
        before = provider.resolve_remote_branch_head(clone, "main", AUTH)
        git_remote.push({"f1.txt": "new\n"})

        assert provider.resolve_remote_branch_head(clone, "main", AUTH) == before

    def test_deleted_remote_branch(self, clone, provider, git_remote):
        """Test a branch deleted on the remote is reported after the next fetch."""
        git_remote.switch("dev")
        git_remote.push({"dev.txt": "dev\n"})
        provider.fetch(clone, AUTH)
        provider.resolve_remote_branch_head(clone, "dev", AUTH)

        git_remote.author.git.push("origin", "--delete", "dev")
        provider.fetch(clone, AUTH)

        with pytest.raises(RemoteBranchNotFoundError):
            provider.resolve_remote_branch_head(clone, "dev", AUTH)

    def test_first_parent(self, clone, provider):
        """Test the root commit has no parent."""
        head = provider.resolve_head(clone)

        assert provider.first_parent(clone, head) is None

    def test_diff_trees_rename_split(self, clone, provider, git_remote):
        """Test a rename is reported as a delete and an insert."""
        git_remote.author.git.mv("f2.txt", "renamed.txt")
        git_remote.author.index.commit("Rename f2")
        git_remote.author.git.push("origin", "main")

        provider.fetch(clone, AUTH)
        before = provider.resolve_head(clone)
        after = provider.resolve_remote_branch_head(clone, "main", AUTH)

        changes = provider.diff_trees(clone, before, after)

        assert TreeChange(action=TreeAction.DELETE, from_path="f2.txt") in changes
        assert TreeChange(action=TreeAction.INSERT, to_path="renamed.txt") in changes
        assert len(changes) == 2

    def test_pull_fast_forwards(self, clone, provider, git_remote):
        """Test pulling moves the local head to the remote head."""
        sha = git_remote.push({"f1.txt": "new\n"})

        provider.fetch(clone, AUTH)
        provider.pull(clone, "main", AUTH)

        assert provider.resolve_head(clone).sha == sha
        assert (Path(clone.working_dir) / "f1.txt").read_text() == "new\n"


class TestPolling:
    """End-to-end polling against a real remote."""

    def test_scenario_a_b_c(self, git_config, git_remote):
        """Test f1 added in B and f2 modified in C."""
        poller = Poller(git_config(branch="main"))
        poller.setup()
        a = poller.provider.resolve_head(poller.repo).sha
        b = git_remote.push({"f1.txt": "new\n"}, message="Add f1")
        c = git_remote.push({"f2.txt": "two\n"}, message="Update f2")
        clone = poller.config.clone_directory

        diffs = poller.poll()

        assert [(d.from_commit.sha, d.to_commit.sha) for d in diffs] == [(a, b), (b, c)]
        assert diffs[0].changes == [FileChange(filepath=str(clone / "f1.txt"), change_type=ChangeType.CREATE)]
        assert diffs[1].changes == [FileChange(filepath=str(clone / "f2.txt"), change_type=ChangeType.UPDATE)]
        assert diffs[1].to_commit.message.strip() == "Update f2"
        assert (clone / "f2.txt").read_text() == "two\n"

    def test_no_new_commits(self, git_config):
        """Test polling an up-to-date clone returns nothing."""
        poller = Poller(git_config())
        poller.setup()

        assert poller.poll() == []
        assert poller.branch == "main"

    def test_delete(self, git_config, git_remote):
        """Test a deleted file is reported at its old path."""
        git_remote.push({"f1.txt": "new\n"}, message="Add f1")
        poller = Poller(git_config())
        poller.setup()
        git_remote.push(deletes=["f1.txt"], message="Remove f1")

        (diff,) = poller.poll()

        clone = poller.config.clone_directory
        assert diff.changes == [FileChange(filepath=str(clone / "f1.txt"), change_type=ChangeType.DELETE)]
        assert not (clone / "f1.txt").exists()

    def test_initial_snapshot(self, git_config):
        """Test the snapshot lists checked out files without .git."""
        received = []
        poller = Poller(git_config(on_change=received.append))

        poller.setup()

        clone = poller.config.clone_directory
        assert [sorted(c.filepath for c in diff.changes) for diff in received] == [
            [str(clone / "README.md"), str(clone / "f2.txt")]
        ]

    def test_reuses_existing_clone(self, git_config, git_remote):
        """Test a second poller on the same directory picks up where the clone is."""
        Poller(git_config()).setup()
        sha = git_remote.push({"f1.txt": "new\n"})

        poller = Poller(git_config())
        poller.setup()
        diffs = poller.poll()

        assert [diff.to_commit.sha for diff in diffs] == [sha]

    def test_existing_clone_switches_branch(self, git_config, git_remote):
        """Test reopening a clone checks out the configured branch."""
        Poller(git_config(branch="main")).setup()
        git_remote.switch("dev")
        dev = git_remote.push({"dev.txt": "dev\n"}, message="Add dev")
        git_remote.switch("main")
        git_remote.push({"main.txt": "main\n"}, message="Add main")

        poller = Poller(git_config(branch="dev"))
        poller.setup()

        assert poller.provider.current_branch(poller.repo) == "dev"
        assert poller.provider.resolve_head(poller.repo).sha == dev
        assert poller.poll() == []

        git_remote.switch("dev")
        later = git_remote.push({"dev.txt": "dev 2\n"}, message="Update dev")

        assert [diff.to_commit.sha for diff in poller.poll()] == [later]
        assert not (poller.config.clone_directory / "main.txt").exists()

    def test_existing_clone_unknown_branch(self, git_config):
        """Test reopening a clone on a branch the remote lacks fails setup."""
        Poller(git_config(branch="main")).setup()

        with pytest.raises(SetupError) as exc_info:
            Poller(git_config(branch="missing")).setup()

        assert isinstance(exc_info.value.__cause__, RemoteBranchNotFoundError)

    def test_push_between_fetch_and_head_lookup(self, git_config, git_remote, monkeypatch):
        """Test a commit pushed right after the fetch is picked up by the next poll."""
        poller = Poller(git_config())
        poller.setup()
        fetched = git_remote.push({"f1.txt": "new\n"}, message="Add f1")

        real_fetch = poller.provider.fetch
        late = []

        def fetch_then_push(handle, auth):
            real_fetch(handle, auth)
            if not late:
                late.append(git_remote.push({"f3.txt": "late\n"}, message="Add f3"))

        monkeypatch.setattr(poller.provider, "fetch", fetch_then_push)

        first = poller.poll()
        second = poller.poll()

        assert [diff.to_commit.sha for diff in first] == [fetched]
        assert [diff.to_commit.sha for diff in second] == late

    def test_clone_failure(self, git_config, tmp_path):
        """Test an unreachable remote fails setup."""
        poller = Poller(git_config(remote=str(tmp_path / "missing.git")))

        with pytest.raises(SetupError):
            poller.setup()

    def test_start_async(self, git_config, git_remote):
        """Test the background loop delivers new commits on the channel."""
        poller = Poller(git_config())
        channel = poller.start_async()
        sha = git_remote.push({"f1.txt": "new\n"})

        diff = channel.get(timeout=30)
        poller.stop()

        assert diff.to_commit.sha == sha
        assert poller.join(30)
