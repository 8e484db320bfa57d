"""Polling a remote Git repository for new commits.

A Poller keeps a local clone of a remote branch. On every tick it fetches
the remote, diffs each new commit against its first parent and hands the
resulting CommitDiffs to the consumer, oldest first, exactly once.

Delivery happens through two paths, in this order for every CommitDiff:

1. ``PollConfig.on_change``, called synchronously on the polling thread.
2. The delivery channel returned by ``start_async()``, a ``queue.Queue``
   holding at most ``PollConfig.channel_capacity`` diffs (1 by default).
   When it is full the polling thread blocks until the consumer takes an
   item, so a consumer that does not drain the channel stalls polling.

The channel is never closed. Consumers detect termination through
``Poller.stopped`` or ``Poller.join()``.
"""

import queue
import threading
from enum import Enum
from typing import Any, List, Optional

import structlog

from gitpoll.detection.aggregator import ChangeAggregator
from gitpoll.detection.ancestry import AncestryWalker
from gitpoll.detection.diff import DiffEngine
from gitpoll.detection.snapshot import snapshot_working_tree
from gitpoll.exceptions import (
    AlreadyStartedError,
    ConfigurationError,
    NotSetUpError,
    PollError,
    SetupError,
)
from gitpoll.models.commit import CommitDiff
from gitpoll.models.config import PollConfig
from gitpoll.repository.auth import redact_url, to_auth_method
from gitpoll.repository.git_provider import GitRepositoryProvider
from gitpoll.repository.provider import RepositoryProvider

logger = structlog.get_logger(__name__)

# How often a blocked channel send re-checks for stop().
_SEND_RECHECK_SECONDS = 0.1


class PollerState(str, Enum):
    """Lifecycle of a Poller. A poller only ever moves forward."""

    CREATED = "created"
    SETTING_UP = "setting_up"
    READY = "ready"
    RUNNING = "running"
    STOPPED = "stopped"


class Poller:
    """Polls a remote Git branch and delivers new commits as CommitDiffs.

    A Poller is single use: once stopped it cannot be started again.
    """

    def __init__(self, config: PollConfig, provider: Optional[RepositoryProvider] = None) -> None:
        """Initialize the poller. Nothing is cloned until setup.

        Args:
            config: Poll configuration
            provider: Repository backend. Defaults to GitRepositoryProvider.

        Raises:
            ConfigurationError: If the credentials cannot be used
        """
        self.config = config
        self.auth = to_auth_method(config.auth)
        self.provider = provider or GitRepositoryProvider()

        self.branch: Optional[str] = config.branch
        self.repo: Any = None

        self._state = PollerState.CREATED
        self._state_lock = threading.Lock()
        self._stop_event = threading.Event()
        self._changes: "queue.Queue[CommitDiff]" = queue.Queue(maxsize=config.channel_capacity)
        self._thread: Optional[threading.Thread] = None
        self._deliver_to_channel = True

        diff_engine = DiffEngine(self.provider)
        self.walker = AncestryWalker(self.provider)
        self.aggregator = ChangeAggregator(diff_engine, config.clone_directory, config.file_filter)

    @classmethod
    def from_options(cls, provider: Optional[RepositoryProvider] = None, **options: Any) -> "Poller":
        """Create a poller from keyword options instead of a PollConfig.

        Raises:
            ConfigurationError: If the options are missing or contradictory
        """
        try:
            config = PollConfig(**options)
        except ValueError as e:
            raise ConfigurationError(f"Invalid poll configuration: {e}") from e
        return cls(config, provider=provider)

    @property
    def state(self) -> PollerState:
        return self._state

    @property
    def changes(self) -> "queue.Queue[CommitDiff]":
        """The delivery channel."""
        return self._changes

    @property
    def stopped(self) -> bool:
        return self._state == PollerState.STOPPED

    def setup(self) -> None:
        """Clone or open the repository and emit the initial snapshot.

        When ``on_change`` is configured, every file in the working tree is
        reported to it once as an ``init`` change before polling begins.

        Raises:
            AlreadyStartedError: If the poller was already set up
            SetupError: If cloning or the initial snapshot fails
        """
        self._transition(PollerState.CREATED, PollerState.SETTING_UP)

        try:
            self._setup()
        except Exception as e:
            self._set_state(PollerState.STOPPED)
            logger.error("poller_setup_failed", remote=redact_url(self.config.remote), error=str(e))
            if isinstance(e, SetupError):
                raise
            raise SetupError(f"Failed to set up poller: {e}") from e

        self._set_state(PollerState.READY)

    def _setup(self) -> None:
        self.config.clone_directory.mkdir(parents=True, exist_ok=True)
        self.repo = self.provider.clone(
            self.config.remote, self.config.branch, self.config.clone_directory, self.auth
        )
        if self.branch is None:
            self.branch = self.provider.current_branch(self.repo)

        head = self.provider.resolve_head(self.repo)
        logger.info(
            "poller_ready",
            remote=redact_url(self.config.remote),
            branch=self.branch,
            head=head.short_sha,
            directory=str(self.config.clone_directory),
        )

        if self.config.on_change is None:
            return

        snapshot = self.aggregator.apply(snapshot_working_tree(self.config.clone_directory, head))
        logger.info("emitting_initial_snapshot", files=len(snapshot.changes))
        try:
            self.config.on_change(snapshot)
        except Exception as e:
            raise SetupError(f"Change handler failed on the initial snapshot: {e}") from e

    def poll(self) -> List[CommitDiff]:
        """Diff the remote against the local clone, then fast-forward.

        Does not touch the timer or the delivery channel.

        Returns:
            One CommitDiff per new commit, oldest first. Empty when the
            local clone is up to date.

        Raises:
            NotSetUpError: If setup has not completed
            PollError: If fetching, diffing or fast-forwarding fails
        """
        if self.repo is None:
            raise NotSetUpError("Poller has no repository; call setup() first")

        try:
            self.provider.fetch(self.repo, self.auth)
            local_head = self.provider.resolve_head(self.repo)
            remote_head = self.provider.resolve_remote_branch_head(self.repo, self.branch, self.auth)

            commits = self.walker.walk(self.repo, local_head, remote_head)
            diffs = self.aggregator.aggregate(self.repo, commits)

            if commits:
                self.provider.pull(self.repo, self.branch, self.auth, target=remote_head)
        except PollError:
            raise
        except Exception as e:
            raise PollError(f"Failed to poll {redact_url(self.config.remote)}: {e}") from e

        if diffs:
            logger.info(
                "new_commits_detected",
                branch=self.branch,
                commits=len(diffs),
                head=remote_head.short_sha,
            )
        return diffs

    def start(self) -> None:
        """Set up and poll on the calling thread until stop() is called.

        Diffs are delivered through ``on_change`` only; nothing is put on the
        delivery channel since no one could consume it while this blocks.

        Raises:
            AlreadyStartedError: If the poller was already started
            SetupError: If setup fails
        """
        self._prepare_start()
        self._deliver_to_channel = False
        self._run()

    def start_async(self) -> "queue.Queue[CommitDiff]":
        """Set up on the calling thread, then poll on a background thread.

        Returns:
            The delivery channel

        Raises:
            AlreadyStartedError: If the poller was already started
            SetupError: If setup fails
        """
        self._prepare_start()
        self._thread = threading.Thread(target=self._run, name="gitpoll-loop", daemon=True)
        self._thread.start()
        return self._changes

    def stop(self) -> None:
        """Ask the polling loop to exit at its next wait.

        Safe to call more than once, from any thread, and before starting.
        A tick already in progress runs to completion.
        """
        if not self._stop_event.is_set():
            logger.info("poller_stop_requested")
        self._stop_event.set()

    def join(self, timeout: Optional[float] = None) -> bool:
        """Wait for a loop started with start_async() to exit.

        Returns:
            True if the loop is no longer running
        """
        if self._thread is not None:
            self._thread.join(timeout)
            return not self._thread.is_alive()
        return self._state != PollerState.RUNNING

    def _prepare_start(self) -> None:
        with self._state_lock:
            state = self._state
        if state == PollerState.CREATED:
            self.setup()
        elif state != PollerState.READY:
            raise AlreadyStartedError(f"Poller cannot be started from state {state.value}")
        self._transition(PollerState.READY, PollerState.RUNNING)

    def _transition(self, expected: PollerState, target: PollerState) -> None:
        with self._state_lock:
            if self._state != expected:
                raise AlreadyStartedError(
                    f"Poller is {self._state.value}, expected {expected.value}"
                )
            self._state = target

    def _set_state(self, state: PollerState) -> None:
        with self._state_lock:
            self._state = state

    def _run(self) -> None:
        logger.info("poll_loop_started", interval=self.config.interval, branch=self.branch)
        try:
            while not self._stop_event.wait(self.config.interval):
                if not self._tick():
                    break
        finally:
            self._set_state(PollerState.STOPPED)
            logger.info("poll_loop_stopped")

    def _tick(self) -> bool:
        """Run one polling tick. Returns False if stop was requested mid-delivery."""
        try:
            diffs = self.poll()
        except Exception as e:
            # Tick errors are never fatal; the next tick is the retry.
            logger.warning("poll_tick_failed", error=str(e))
            self._report_error(e)
            return True

        for diff in diffs:
            if self.config.on_change is not None:
                try:
                    self.config.on_change(diff)
                except Exception as e:
                    logger.error("change_handler_failed", commit=diff.to_commit.short_sha, error=str(e))
                    self._report_error(e)
            if self._deliver_to_channel and not self._send(diff):
                return False
        return True

    def _send(self, diff: CommitDiff) -> bool:
        while True:
            try:
                self._changes.put(diff, timeout=_SEND_RECHECK_SECONDS)
                return True
            except queue.Full:
                if self._stop_event.is_set():
                    logger.warning("undelivered_commit_diff", commit=diff.to_commit.short_sha)
                    return False

    def _report_error(self, error: Exception) -> None:
        if self.config.on_error is None:
            return
        try:
            self.config.on_error(error)
        except Exception as e:
            logger.error("error_handler_failed", error=str(e))
