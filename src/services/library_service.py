"""Library mutations: add, edit, move and delete games; challenges; genres.

Every operation that touches more than one document writes through a
single WriteBatch, so a failed commit leaves nothing half-applied.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime, timezone
from typing import Callable, Sequence

from src.core.challenge import Challenge, ChallengeIdea
from src.core.game import CanonicalGame, GameList, Platform
from src.core.library_store import CHALLENGES, GAMES, PROFILE, PROFILE_DOC, LibraryStore
from src.core.preferences import UserPreferences
from src.services.challenge_service import ChallengeMatcher, Vocabulary
from src.services.reconciliation_service import BatchReconciliation, GameDraft, ReconciliationEngine
from src.utils.name_matching import unique_casefold

logger = logging.getLogger("backlogtracker.library")

__all__ = ["LibraryService", "utc_now"]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _positive(value: int | None) -> int | None:
    return value if value is not None and value > 0 else None


class LibraryService:
    """Applies user actions to one user's library in the store."""

    def __init__(
        self,
        store: LibraryStore,
        engine: ReconciliationEngine,
        matcher: ChallengeMatcher | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._store = store
        self._engine = engine
        self._matcher = matcher or ChallengeMatcher()
        self._clock = clock

    def _require_game(self, user_id: str, game_id: str) -> CanonicalGame:
        doc = self._store.get(user_id, GAMES, game_id)
        if doc is None:
            raise KeyError(f"Game {game_id} not found")
        return CanonicalGame.from_document(game_id, doc)

    # ------------------------------------------------------------------
    # Games
    # ------------------------------------------------------------------

    async def add_game(self, user_id: str, draft: GameDraft, *, searching: bool = True) -> CanonicalGame:
        """Reconciles a title and stores the new record.

        Raises:
            AuthConfigurationError: If a credential is missing; nothing is written.
        """
        preferences = self._store.preferences(user_id)
        game = await self._engine.reconcile_title(draft, preferences, searching=searching)
        game = replace(game, id=self._store.new_id(), date_added=self._clock())

        self._store.batch(user_id).set(GAMES, game.id, game.to_document()).commit()
        logger.info("Added %r to %s", game.title, game.list.value)
        return game

    async def batch_add_games(
        self,
        user_id: str,
        titles: Sequence[str],
        target_list: GameList,
        platform: Platform | None = None,
    ) -> BatchReconciliation:
        """Adds many titles at once.

        Only catalog-resolved titles are written, all in one batch. The
        returned result carries the titles that failed.
        """
        preferences = self._store.preferences(user_id)
        result = await self._engine.reconcile_batch(titles, preferences, target_list=target_list, platform=platform)

        now = self._clock()
        stored = [replace(g, id=self._store.new_id(), date_added=now) for g in result.games]
        if stored:
            batch = self._store.batch(user_id)
            for game in stored:
                batch.set(GAMES, game.id, game.to_document())
            batch.commit()

        logger.info("Batch add: %d added, %d failed", len(stored), result.failed_count)
        return BatchReconciliation(games=stored, failed_titles=result.failed_titles)

    async def update_game(
        self, user_id: str, game_id: str, draft: GameDraft, *, searching: bool = False
    ) -> CanonicalGame:
        """Applies an edit to an existing record.

        A zero or missing rating or playtime becomes absent. Leaving PC
        clears storefront fields; staying on or moving to PC re-resolves
        them. With ``searching`` the title is re-resolved through the
        catalog as well. List changes go through move_game().

        Raises:
            KeyError: If the game does not exist.
        """
        current = self._require_game(user_id, game_id)
        preferences = self._store.preferences(user_id)
        platform = draft.platform or current.platform

        if searching:
            edited = await self._engine.reconcile_title(replace(draft, platform=platform), preferences, searching=True)
        else:
            edited = CanonicalGame(
                title=draft.title.strip() or current.title,
                platform=platform,
                list=current.list,
                genres=unique_casefold(draft.genres),
                image_url=current.image_url,
                release_date=current.release_date,
                playtime_normally=_positive(draft.playtime_normally),
                playtime_completely=_positive(draft.playtime_completely),
                rating=draft.rating or None,
                replay_count=draft.replay_count,
            )
            edited = await self._engine.apply_platform_change(edited, platform, preferences)

        game = replace(
            edited,
            id=current.id,
            list=current.list,
            date_added=current.date_added,
            date_completed=current.date_completed,
        )
        self._store.batch(user_id).set(GAMES, game_id, game.to_document()).commit()
        logger.info("Updated %r", game.title)
        return game

    def move_game(self, user_id: str, game_id: str, new_list: GameList) -> CanonicalGame:
        """Moves a game to another list with its side effects.

        Entering Recently Played stamps the completion date and advances
        matching challenges in the same batch. Leaving Recently Played
        counts a replay.

        Raises:
            KeyError: If the game does not exist.
            TransactionalWriteError: If the batch fails; nothing applies.
        """
        current = self._require_game(user_id, game_id)
        new_list = GameList(new_list)
        if current.list is new_list:
            return current

        batch = self._store.batch(user_id)
        fields: dict[str, object] = {"list": new_list.value}

        if new_list is GameList.RECENTLY_PLAYED:
            now = self._clock()
            game = replace(current, list=new_list, date_completed=now)
            fields["dateCompleted"] = game.to_document()["dateCompleted"]

            snapshot = self._store.snapshot(user_id)
            vocabulary = Vocabulary.from_library(
                snapshot.games,
                snapshot.preferences.custom_genres,
                snapshot.preferences.platforms,
            )
            for challenge in self._matcher.apply_completion(game, snapshot.challenges, vocabulary, now):
                batch.set(CHALLENGES, challenge.id, challenge.to_document())
        elif current.list is GameList.RECENTLY_PLAYED:
            game = replace(current, list=new_list, replay_count=current.replay_count + 1)
            fields["replayCount"] = game.replay_count
        else:
            game = replace(current, list=new_list)

        batch.update(GAMES, game_id, fields)
        batch.commit()
        logger.info("Moved %r from %s to %s", game.title, current.list.value, new_list.value)
        return game

    def delete_game(self, user_id: str, game_id: str) -> None:
        """Deletes a game permanently."""
        self._store.batch(user_id).delete(GAMES, game_id).commit()
        logger.info("Deleted game %s", game_id)

    # ------------------------------------------------------------------
    # Challenges
    # ------------------------------------------------------------------

    def add_challenge(self, user_id: str, idea: ChallengeIdea) -> Challenge:
        """Creates an active challenge from user input or an oracle idea."""
        challenge = Challenge(
            id=self._store.new_id(),
            title=idea.title.strip(),
            description=idea.description.strip(),
            goal=idea.goal,
            created_at=self._clock(),
        )
        self._store.batch(user_id).set(CHALLENGES, challenge.id, challenge.to_document()).commit()
        logger.info("Created challenge %r (goal %d)", challenge.title, challenge.goal)
        return challenge

    # ------------------------------------------------------------------
    # Genres and preferences
    # ------------------------------------------------------------------

    def genre_vocabulary(self, user_id: str) -> list[str]:
        """All genres in the library plus custom ones, sorted."""
        snapshot = self._store.snapshot(user_id)
        genres = unique_casefold([g for game in snapshot.games for g in game.genres], snapshot.preferences.custom_genres)
        return sorted(genres, key=str.casefold)

    def add_custom_genre(self, user_id: str, genre: str) -> bool:
        """Adds a genre to the user's vocabulary.

        Returns:
            False if it was blank or already known (ignoring case).
        """
        genre = genre.strip()
        if not genre or genre.casefold() in {g.casefold() for g in self.genre_vocabulary(user_id)}:
            return False

        preferences = self._store.preferences(user_id)
        self.save_preferences(user_id, replace(preferences, custom_genres=(*preferences.custom_genres, genre)))
        return True

    def save_preferences(self, user_id: str, preferences: UserPreferences) -> None:
        """Writes preference flags, keeping other profile fields."""
        profile = {**self._store.profile(user_id), **preferences.to_document()}
        if preferences.favorite_platform is None:
            profile.pop("favoritePlatform", None)
        self._store.batch(user_id).set(PROFILE, PROFILE_DOC, profile).commit()
