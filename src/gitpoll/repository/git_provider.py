"""GitPython-backed repository provider."""

from datetime import timezone
from pathlib import Path
from typing import List, Optional

import git
import structlog
from git import Repo

from gitpoll.exceptions import RemoteBranchNotFoundError, RepositoryError, TransportAuthError
from gitpoll.models.commit import Author, CommitInfo
from gitpoll.repository.auth import AuthMethod, redact_url
from gitpoll.models.tree import TreeAction, TreeChange
from gitpoll.repository.provider import RepositoryProvider

logger = structlog.get_logger(__name__)

REMOTE_NAME = "origin"

# Fragments of git stderr that mean the remote rejected our credentials.
_AUTH_FAILURE_MARKERS = (
    "authentication failed",
    "permission denied (publickey",
    "could not read username",
    "could not read password",
    "invalid username or password",
    "http basic: access denied",
    "the requested url returned error: 401",
    "the requested url returned error: 403",
)


def _translate_git_error(operation: str, error: git.GitCommandError) -> RepositoryError:
    """Map a failed git command onto the gitpoll error taxonomy."""
    stderr = str(error.stderr or "").strip()
    message = f"git {operation} failed: {stderr or error}"
    if any(marker in stderr.lower() for marker in _AUTH_FAILURE_MARKERS):
        return TransportAuthError(message)
    return RepositoryError(message)


def to_commit_info(commit: git.Commit) -> CommitInfo:
    """Convert a GitPython commit into CommitInfo.

    Args:
        commit: GitPython Commit object

    Returns:
        CommitInfo with the author timestamp in UTC
    """
    message = commit.message
    if isinstance(message, bytes):
        message = message.decode("utf-8", errors="replace")

    return CommitInfo(
        sha=commit.hexsha,
        when=commit.authored_datetime.astimezone(timezone.utc),
        author=Author(name=commit.author.name or "", email=commit.author.email or ""),
        message=message,
    )


class GitRepositoryProvider(RepositoryProvider):
    """Clones, fetches and diffs repositories with GitPython."""

    def clone(self, remote: str, branch: Optional[str], directory: Path, auth: AuthMethod) -> Repo:
        directory = Path(directory)
        if (directory / ".git").exists():
            return self._open(directory, branch, auth)

        kwargs = {}
        if branch:
            kwargs["branch"] = branch

        logger.info("cloning_repository", remote=redact_url(remote), branch=branch, directory=str(directory))
        try:
            repo = Repo.clone_from(auth.url(remote), directory, env=auth.env(), **kwargs)
        except git.GitCommandError as e:
            raise _translate_git_error("clone", e) from e

        # Keep credentials out of .git/config
        origin = repo.remote(REMOTE_NAME)
        if origin.url != remote:
            origin.set_url(remote)
        return repo

    def fetch(self, handle: Repo, auth: AuthMethod) -> None:
        origin = handle.remote(REMOTE_NAME)
        refspec = f"+refs/heads/*:refs/remotes/{REMOTE_NAME}/*"
        try:
            with handle.git.custom_environment(**auth.env()):
                handle.git.fetch("--prune", auth.url(origin.url), refspec)
        except git.GitCommandError as e:
            raise _translate_git_error("fetch", e) from e

    def pull(
        self,
        handle: Repo,
        branch: str,
        auth: AuthMethod,
        target: Optional[CommitInfo] = None,
    ) -> None:
        try:
            with handle.git.custom_environment(**auth.env()):
                if target is not None:
                    handle.git.merge("--ff-only", target.sha)
                else:
                    origin = handle.remote(REMOTE_NAME)
                    handle.git.pull("--ff-only", auth.url(origin.url), branch)
        except git.GitCommandError as e:
            raise _translate_git_error("pull", e) from e

    def resolve_head(self, handle: Repo) -> CommitInfo:
        try:
            return to_commit_info(handle.head.commit)
        except ValueError as e:
            raise RepositoryError(f"Repository has no HEAD commit: {handle.working_dir}") from e

    def resolve_remote_branch_head(self, handle: Repo, branch: str, auth: AuthMethod) -> CommitInfo:
        # Read from the remote-tracking ref so the head is always a commit
        # the last fetch brought in.
        return to_commit_info(self._remote_tracking_commit(handle, branch))

    def current_branch(self, handle: Repo) -> str:
        try:
            return handle.active_branch.name
        except TypeError as e:
            # Detached HEAD
            raise RepositoryError(f"No branch checked out in {handle.working_dir}") from e

    def first_parent(self, handle: Repo, commit: CommitInfo) -> Optional[CommitInfo]:
        git_commit = self._commit(handle, commit.sha)
        if not git_commit.parents:
            return None
        return to_commit_info(git_commit.parents[0])

    def diff_trees(self, handle: Repo, from_commit: CommitInfo, to_commit: CommitInfo) -> List[TreeChange]:
        a = self._commit(handle, from_commit.sha)
        b = self._commit(handle, to_commit.sha)

        try:
            diff_index = a.diff(b)
        except git.GitCommandError as e:
            raise _translate_git_error("diff", e) from e

        changes = []
        for diff in diff_index:
            if diff.change_type == "A" or diff.change_type == "C":
                changes.append(TreeChange(action=TreeAction.INSERT, to_path=diff.b_path))
            elif diff.change_type == "D":
                changes.append(TreeChange(action=TreeAction.DELETE, from_path=diff.a_path))
            elif diff.change_type == "R":
                changes.append(TreeChange(action=TreeAction.DELETE, from_path=diff.a_path))
                changes.append(TreeChange(action=TreeAction.INSERT, to_path=diff.b_path))
            else:
                # M and T (type change)
                changes.append(TreeChange(action=TreeAction.MODIFY, from_path=diff.a_path, to_path=diff.b_path))
        return changes

    def _open(self, directory: Path, branch: Optional[str], auth: AuthMethod) -> Repo:
        """Open an existing clone and make sure branch is checked out."""
        logger.info("opening_existing_clone", directory=str(directory), branch=branch)
        try:
            repo = Repo(directory)
        except git.exc.InvalidGitRepositoryError as e:
            raise RepositoryError(f"Invalid Git repository: {directory}") from e

        if branch is None:
            return repo
        try:
            active = repo.active_branch.name
        except TypeError:
            active = None
        if active != branch:
            self._checkout(repo, branch, auth)
        return repo

    def _checkout(self, handle: Repo, branch: str, auth: AuthMethod) -> None:
        """Switch the clone to branch, creating a local branch tracking origin if needed."""
        local_branches = [head.name for head in handle.heads]
        try:
            if branch in local_branches:
                logger.info("checking_out_branch", branch=branch)
                handle.git.checkout(branch)
                return

            tracking = f"{REMOTE_NAME}/{branch}"
            if tracking not in [ref.name for ref in handle.refs]:
                self.fetch(handle, auth)
            # Raises RemoteBranchNotFoundError if the remote has no such branch
            self._remote_tracking_commit(handle, branch)

            logger.info("checking_out_branch", branch=branch, tracking=tracking)
            handle.git.checkout("-b", branch, "--track", tracking)
        except git.GitCommandError as e:
            raise _translate_git_error("checkout", e) from e

    def _remote_tracking_commit(self, handle: Repo, branch: str) -> git.Commit:
        try:
            return handle.commit(f"refs/remotes/{REMOTE_NAME}/{branch}")
        except (git.exc.BadName, git.exc.BadObject, ValueError) as e:
            raise RemoteBranchNotFoundError(branch) from e

    def _commit(self, handle: Repo, sha: str) -> git.Commit:
        try:
            return handle.commit(sha)
        except (git.exc.BadName, ValueError) as e:
            raise RepositoryError(f"Commit not found: {sha}") from e
