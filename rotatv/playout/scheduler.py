"""
Rotation scheduler.

Owns every piece of mutable playback state (queue, recency window,
interstitial gate, vote tally, cursor) and runs each transition under a
single asyncio lock. Completion timers call back into ``on_item_finished``
with the generation they were armed with.

Transition on item finished:
    1. Interstitial due?  -> play one, then come back here.
    2. Record the finished main item as recently played.
    3. Queue non-empty?    -> play the front item.
    4. Room grind roll?    -> play the fallback segment.
    5. Room shuffle roll?  -> loop a random room clip.
    6. Otherwise           -> shuffle a fresh item (ignoring recency if needed).
"""

import asyncio
import logging
import random
import time
from dataclasses import replace
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple

from rotatv.catalog.models import Catalog, MediaItem
from rotatv.config import PresenterConfig, RotationConfig, VotingConfig
from rotatv.errors import (
    CollaboratorError,
    DuplicateQueueEntryError,
    InvariantViolation,
    UnknownMediaError,
    UserInputError,
)
from rotatv.playout.filter import CatalogFilter
from rotatv.playout.interstitial import InterstitialChoice, InterstitialGate, InterstitialKind
from rotatv.playout.queue import PlaybackQueue
from rotatv.playout.recency import RecencyTracker
from rotatv.playout.state import PlaybackCursor, PlaybackTimer, RotationState
from rotatv.presenter.base import Presenter
from rotatv.tasks.scheduler import TaskScheduler
from rotatv.voting.tally import VoteStatus, VoteTally

logger = logging.getLogger(__name__)

VOTE_CYCLE_TASK = "vote_cycle"
VOTE_REMINDER_TASK = "vote_reminder"


class RotationScheduler:
    """
    Decides and starts what plays next, and runs audience vote rounds.

    Usage:
        rotation = RotationScheduler(catalog, presenter, rotation=cfg.rotation)
        await rotation.start()
        ...
        await rotation.skip()
        await rotation.stop()
    """

    def __init__(
        self,
        catalog: Catalog,
        presenter: Presenter,
        rotation: Optional[RotationConfig] = None,
        voting: Optional[VotingConfig] = None,
        scenes: Optional[PresenterConfig] = None,
        announce: Optional[Callable[[str], Awaitable[None]]] = None,
        task_scheduler: Optional[TaskScheduler] = None,
        clock: Callable[[], float] = time.monotonic,
        rng: Optional[random.Random] = None,
        command_prefix: str = "!",
    ):
        self.catalog = catalog
        self.presenter = presenter
        self.rotation = rotation or RotationConfig()
        self.voting = voting or VotingConfig()
        self.scenes = scenes or PresenterConfig()
        self.announce = announce
        self.tasks = task_scheduler or TaskScheduler()
        self.command_prefix = command_prefix
        self.rng = rng or random.Random()

        self.queue = PlaybackQueue()
        self.recency = RecencyTracker(self.rotation.recently_played_memory)
        self.filter = CatalogFilter(self.rng)
        self.tally = VoteTally()
        self.gate = InterstitialGate(
            pool=catalog.interstitials,
            interval_seconds=self.rotation.commercial_interval,
            enabled=self.rotation.commercials_enabled,
            special_item=catalog.special_interstitial,
            special_chance=self.rotation.special_chance,
            clock=clock,
            rng=self.rng,
        )
        self.cursor = PlaybackCursor()

        self._lock = asyncio.Lock()
        self._finished_main: Optional[MediaItem] = None
        self._skip_vote_target: Optional[str] = None
        self._skip_voters: set[str] = set()
        self._running = False

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @property
    def state(self) -> RotationState:
        return self.cursor.state

    @property
    def is_running(self) -> bool:
        return self._running

    async def start(self) -> None:
        """Seed the queue, open the first vote round and start playback."""
        if self._running:
            return
        self._running = True

        async with self._lock:
            seed = self.filter.select_fresh(
                self.catalog.rotation_items, self.recency, (), self.rotation.initial_queue_size
            )
            for item in seed:
                self.queue.enqueue(item)
            logger.info(f"Rotation starting with {self.queue.size()} seeded items")

            await self._advance()

            if self.voting.enabled:
                self._open_vote_round()

        if self.voting.enabled:
            self._schedule_vote_tasks()
            await self.announce_vote()
        await self.tasks.start()

    async def stop(self) -> None:
        """Cancel timers and background tasks. The presenter is left as-is."""
        self._running = False
        await self.tasks.stop()
        async with self._lock:
            self.cursor.next_generation()
            self.cursor.set(None, RotationState.IDLE)
        logger.info("Rotation stopped")

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    async def on_item_finished(self, generation: int) -> None:
        """Completion timer callback for whatever is on air."""
        async with self._lock:
            if generation != self.cursor.generation:
                logger.debug(
                    f"Ignoring stale completion (generation {generation}, "
                    f"current {self.cursor.generation})"
                )
                return
            if not self._running:
                return

            self.cursor.next_generation()
            await self._wrap_up_current()
            await self._advance()

    async def skip(self) -> Optional[MediaItem]:
        """
        Stop the current item now and advance.

        Interstitial gating still applies to what plays next.

        Returns:
            The item that was skipped, if anything was on air.
        """
        async with self._lock:
            return await self._skip_locked()

    async def _skip_locked(self) -> Optional[MediaItem]:
        if not self._running:
            return None
        skipped = self.cursor.current_item
        self.cursor.next_generation()
        self._reset_skip_votes()

        if skipped is not None:
            logger.info(f"Skipping {skipped.label} ({self.cursor.state.value})")
        await self._wrap_up_current()
        await self._advance()
        return skipped

    async def _wrap_up_current(self) -> None:
        """Take the current item off air. Lock must be held."""
        item = self.cursor.current_item
        state = self.cursor.state

        if state == RotationState.PLAYING_MAIN and item is not None:
            self._finished_main = item
            await self._present(
                f"hide {item.id}",
                self.presenter.hide(item.scene_item or item.id, self.scenes.default_scene),
            )
        elif state == RotationState.INTERSTITIAL:
            await self._finish_interstitial()
        elif state == RotationState.ROOM_FALLBACK:
            await self._present(
                "hide fallback",
                self.presenter.set_visible(self.scenes.fallback_item, self.scenes.default_scene, False),
            )

        self.cursor.set(None, RotationState.IDLE)

    async def _advance(self) -> None:
        """Pick and start the next item. Lock must be held."""
        if self.gate.should_interject():
            logger.info(
                f"It has been {self.gate.seconds_since_last():.0f} seconds since the last "
                f"commercial break"
            )
            if await self._start_interstitial():
                return

        if self._finished_main is not None:
            self.recency.record(self._finished_main.id)
            self._finished_main = None

        if self.cursor.retry_item is not None:
            item = self.cursor.retry_item
            self.cursor.retry_item = None
            await self._start_main(item)
            return

        item = self.queue.dequeue_front()
        if item is None:
            if self._roll(self.rotation.room_grind_chance):
                logger.info("Room grind selected!")
                await self._start_fallback()
                return
            if self.catalog.rooms and self._roll(self.rotation.room_shuffle_chance):
                logger.info("Room videos selected!")
                item = self._looped_room(self.rng.choice(self.catalog.rooms))
            else:
                item = self._pick_fresh()

        if item is None:
            logger.error("Catalog has no rotation items, nothing to play")
            self._arm_retry()
            return

        await self._start_main(item)

    def _pick_fresh(self) -> Optional[MediaItem]:
        """Shuffle pick, dropping the recency constraint if it empties the pool."""
        picks = self.filter.select_fresh(self.catalog.rotation_items, self.recency, (), 1)
        if not picks:
            logger.info("Every rotation item was played recently, ignoring recency for this pick")
            picks = self.filter.select_fresh(self.catalog.rotation_items, (), (), 1)
        return picks[0] if picks else None

    def _looped_room(self, room: MediaItem, requested_by: Optional[str] = None) -> MediaItem:
        """Copy of a room clip looped to fill ``room_playtime``."""
        loops = max(1, int(self.rotation.room_playtime // room.duration_seconds))
        logger.info(f"Adding room video {room.label} ({loops} loops)")
        return replace(room, loops=loops, requested_by=requested_by)

    def _roll(self, chance: int) -> bool:
        """Percentage roll, 1-100 at or under ``chance`` succeeds."""
        return chance > 0 and self.rng.randint(1, 100) <= chance

    async def _start_main(self, item: MediaItem) -> None:
        if self.gate.is_playing:
            raise InvariantViolation(f"Main item {item.id} started while an interstitial is on air")
        generation = self.cursor.next_generation()
        shown = await self._present(
            f"show {item.id}",
            self.presenter.show(item, self.scenes.default_scene),
        )
        if not shown:
            self.cursor.retry_item = item
            self._arm_retry()
            return

        self.cursor.set(item, RotationState.PLAYING_MAIN)
        self.cursor.arm(PlaybackTimer(item.play_seconds, self.on_item_finished, generation))
        logger.info(f"Showing video: {item.label} ({item.play_seconds:.0f}s)")

        await self._present(f"activity {item.id}", self.presenter.set_activity(item.label))

    async def _start_fallback(self) -> None:
        generation = self.cursor.next_generation()
        fallback = self.catalog.fallback or MediaItem(
            id=self.scenes.fallback_item,
            label="Room Grind",
            duration_seconds=self.rotation.room_grind_playtime,
            include_in_rotation=False,
        )
        shown = await self._present(
            "show fallback",
            self.presenter.set_visible(
                fallback.scene_item or self.scenes.fallback_item, self.scenes.default_scene, True
            ),
        )
        if not shown:
            self._arm_retry()
            return

        self.cursor.set(fallback, RotationState.ROOM_FALLBACK)
        self.cursor.arm(PlaybackTimer(self.rotation.room_grind_playtime, self.on_item_finished, generation))
        await self._present(
            "activity fallback", self.presenter.set_activity(f"NOW SHOWING: {fallback.label}")
        )

    async def _start_interstitial(self) -> bool:
        """
        Put one interstitial on air.

        Returns:
            False if it could not be shown; the cool-down is reset so the
            main rotation continues instead of retrying the break.
        """
        choice = self.gate.choose_variant()
        self.gate.begin()
        generation = self.cursor.next_generation()
        scene = self.scenes.commercial_scene

        shown = await self._present("switch to commercials", self.presenter.switch_scene(scene))
        shown = shown and await self._present(
            f"show interstitial {choice.item.id}", self.presenter.show(choice.item, scene)
        )
        if not shown:
            logger.warning("Interstitial could not be shown, resuming rotation")
            self.gate.end()
            await self._present("switch back", self.presenter.switch_scene(self.scenes.default_scene))
            return False

        if choice.kind == InterstitialKind.SPECIAL and self.scenes.special_overlay_item:
            await self._present(
                "show special overlay",
                self.presenter.set_visible(self.scenes.special_overlay_item, scene, True),
            )

        self.cursor.set(choice.item, RotationState.INTERSTITIAL, interstitial=choice)
        self.cursor.arm(PlaybackTimer(choice.item.play_seconds, self.on_item_finished, generation))
        logger.info(f"Showing {choice.kind.value} interstitial: {choice.item.label}")
        return True

    async def _finish_interstitial(self) -> None:
        choice = self.cursor.interstitial
        scene = self.scenes.commercial_scene
        if choice is not None:
            logger.info("Commercial is finished playing")
            await self._present(
                f"hide interstitial {choice.item.id}",
                self.presenter.hide(choice.item.scene_item or choice.item.id, scene),
            )
            if choice.kind == InterstitialKind.SPECIAL and self.scenes.special_overlay_item:
                await self._present(
                    "hide special overlay",
                    self.presenter.set_visible(self.scenes.special_overlay_item, scene, False),
                )
        await self._present("switch back", self.presenter.switch_scene(self.scenes.default_scene))
        self.gate.end()

    def _arm_retry(self) -> None:
        """Try advancing again later; skip or a vote cycle may get there first."""
        generation = self.cursor.generation
        self.cursor.set(None, RotationState.IDLE)
        self.cursor.arm(PlaybackTimer(self.rotation.retry_delay_seconds, self.on_item_finished, generation))
        logger.warning(f"Rotation will retry in {self.rotation.retry_delay_seconds}s")

    async def _present(self, description: str, call: Awaitable[Any]) -> bool:
        """Await a presenter call, logging failures instead of raising."""
        try:
            await call
            return True
        except CollaboratorError as e:
            logger.error(f"Presenter call failed ({description}): {e}")
        except Exception as e:
            logger.error(f"Presenter call failed ({description}): {e}", exc_info=True)
        return False

    async def _say(self, text: str) -> None:
        if self.announce is None:
            logger.info(f"[announce] {text}")
            return
        try:
            await self.announce(text)
        except Exception as e:
            logger.error(f"Chat announcement failed: {e}")

    # ------------------------------------------------------------------
    # Queue commands
    # ------------------------------------------------------------------

    async def add(self, item_id: str, requested_by: Optional[str] = None) -> Tuple[MediaItem, int]:
        """
        Queue a catalog item by id.

        Returns:
            The queued item and its 1-based queue position.

        Raises:
            UnknownMediaError: No such id in the catalog.
            DuplicateQueueEntryError: Already queued.
        """
        async with self._lock:
            item = self.catalog.find(item_id)
            if item is None:
                raise UnknownMediaError(item_id)
            if self.queue.contains(item.id):
                raise DuplicateQueueEntryError(item.id)
            if requested_by:
                item = item.with_requester(requested_by)
            self.queue.enqueue(item)
            position = self.queue.size()

        logger.info(f"{item.label} added to the queue [{position}]" + (f" by {requested_by}" if requested_by else ""))
        return item, position

    async def add_room(self, room_id: str, requested_by: Optional[str] = None) -> Tuple[MediaItem, int]:
        """
        Queue a room clip, looped to fill ``room_playtime``.

        Raises:
            UserInputError: No room with that id.
            DuplicateQueueEntryError: Already queued.
        """
        async with self._lock:
            room = self.catalog.find_room(room_id)
            if room is None:
                raise UserInputError("No room found matching that ID!")
            if self.queue.contains(room.id):
                raise DuplicateQueueEntryError(room.id)
            item = self._looped_room(room, requested_by)
            self.queue.enqueue(item)
            position = self.queue.size()

        logger.info(f"Room {item.label} added to the queue [{position}]" + (f" by {requested_by}" if requested_by else ""))
        return item, position

    async def clear_queue(self) -> int:
        async with self._lock:
            removed = self.queue.size()
            self.queue.clear()
        logger.info(f"Queue cleared ({removed} items)")
        return removed

    def current(self) -> Optional[MediaItem]:
        return self.cursor.current_item

    def next_up(self) -> Optional[MediaItem]:
        return self.queue.peek_front()

    def queue_snapshot(self, limit: Optional[int] = 10) -> List[MediaItem]:
        return self.queue.items(limit)

    async def request_interstitial(self, item_id: Optional[str] = None) -> InterstitialChoice:
        """
        Force an interstitial at the next transition.

        Args:
            item_id: Specific interstitial, or None for a random draw.

        Raises:
            UnknownMediaError: No interstitial with that id.
        """
        async with self._lock:
            if item_id:
                choice = self.gate.choose_by_id(item_id)
                if choice is None:
                    raise UnknownMediaError(item_id)
            elif self.gate.has_content:
                choice = self.gate.choose_variant()
            else:
                raise UserInputError("No interstitials are configured!")
            self.gate.request(choice)
        logger.info(f"Interstitial {choice.item.id} requested for the next break")
        return choice

    async def register_skip_vote(self, voter: str, threshold: int) -> Tuple[int, bool]:
        """
        Count an audience vote to skip the current item.

        Returns:
            Votes counted so far for the current item, and whether it was skipped.
        """
        async with self._lock:
            current = self.cursor.current_item
            if current is None:
                return 0, False
            if self._skip_vote_target != current.id:
                self._skip_vote_target = current.id
                self._skip_voters = set()
            self._skip_voters.add(voter)
            count = len(self._skip_voters)

            if count < threshold:
                return count, False
            logger.info(f"Skip vote threshold reached ({count}/{threshold})")
            await self._skip_locked()
            return count, True

    def _reset_skip_votes(self) -> None:
        self._skip_vote_target = None
        self._skip_voters = set()

    # ------------------------------------------------------------------
    # Voting
    # ------------------------------------------------------------------

    def _open_vote_round(self) -> None:
        """Offer a fresh set of choices. Lock must be held."""
        exclude = set(self.queue.ids())
        if self.cursor.current_item is not None:
            exclude.add(self.cursor.current_item.id)
        choices = self.filter.select_fresh(
            self.catalog.rotation_items, (), exclude, self.voting.poll_size
        )
        self.tally.open_round(choices)
        logger.info(f"Vote round opened with {len(choices)} choices")

    async def cast_vote(self, voter: str, choice_index: int) -> VoteStatus:
        async with self._lock:
            return self.tally.cast_vote(voter, choice_index)

    async def run_vote_cycle(self) -> Optional[MediaItem]:
        """
        Close the current round, queue its winner and open the next round.

        With no ballots the winner is a uniform random pick among the
        choices on offer. If a failed show left nothing on air, playback
        is retried before the next round opens.

        Returns:
            The item queued from the closing round, if there was one.
        """
        async with self._lock:
            winner: Optional[MediaItem] = None
            message: Optional[str] = None
            choices = self.tally.choices

            if choices:
                winner = self.tally.resolve()
                if winner is None:
                    winner = self.rng.choice(choices)
                    logger.info(f"VIDEO CHOSEN RANDOMLY: {winner.label}")
                    message = f"No Votes Logged -- Next Video Chosen at Random: {winner.label}"
                else:
                    logger.info(f"WINNER OF THE VOTE: {winner.label}")
                    message = f"Winner of the Video Vote: {winner.label}"

                if not self.queue.enqueue(winner):
                    logger.info(f"Vote winner {winner.id} was already queued")

            if self._running and self.cursor.state == RotationState.IDLE:
                logger.info("Nothing on air after the vote, retrying playback")
                self.cursor.next_generation()
                await self._advance()

            self.tally.close_round()
            self._open_vote_round()

        if message:
            await self._say(message)
        await self.announce_vote()
        # A pausevote may have landed while announcing
        if self.voting_active:
            self.tasks.add_task(VOTE_REMINDER_TASK, self.announce_vote, self.voting.reminder_interval_seconds)
        return winner

    def vote_prompt(self) -> Optional[str]:
        choices = self.tally.choices
        if not choices:
            return None
        listing = " | ".join(f"[{i}] {item.label}" for i, item in enumerate(choices, start=1))
        return (
            f"Vote for which video you'd like to add to the queue using "
            f"{self.command_prefix}vote #: {listing}"
        )

    async def announce_vote(self) -> None:
        prompt = self.vote_prompt()
        if prompt:
            await self._say(prompt)

    def _schedule_vote_tasks(self) -> None:
        self.tasks.add_task(VOTE_CYCLE_TASK, self.run_vote_cycle, self.voting.poll_interval_minutes * 60)
        self.tasks.add_task(VOTE_REMINDER_TASK, self.announce_vote, self.voting.reminder_interval_seconds)

    def start_vote(self) -> int:
        """(Re)schedule the vote cycle. Returns the interval in minutes."""
        self._schedule_vote_tasks()
        return self.voting.poll_interval_minutes

    def pause_vote(self) -> None:
        """Cancel the vote cycle and its reminder. Rotation is unaffected."""
        self.tasks.remove_task(VOTE_CYCLE_TASK)
        self.tasks.remove_task(VOTE_REMINDER_TASK)

    @property
    def voting_active(self) -> bool:
        return self.tasks.has_task(VOTE_CYCLE_TASK)

    # ------------------------------------------------------------------
    # Status
    # ------------------------------------------------------------------

    def status(self) -> Dict[str, Any]:
        """Snapshot for the status API."""
        return {
            "running": self._running,
            "cursor": self.cursor.to_dict(),
            "queue_size": self.queue.size(),
            "next": self.next_up().to_dict() if self.next_up() else None,
            "recently_played": self.recency.ids(),
            "tasks": self.tasks.snapshot(),
            "interstitial": {
                "enabled": self.gate.enabled,
                "playing": self.gate.is_playing,
                "seconds_since_last": round(self.gate.seconds_since_last(), 1),
                "interval_seconds": self.gate.interval_seconds,
                "requested": self.gate.pending_request.item.id if self.gate.pending_request else None,
            },
            "voting": {
                "active": self.voting_active,
                "choices": [item.to_dict() for item in self.tally.choices],
                "tallies": self.tally.tallies(),
                "ballots": self.tally.ballot_count,
            },
        }
