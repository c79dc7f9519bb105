"""
Exercise Resolver: binds free-text exercise names to catalog ids.

Resolution is a cascade of strategies in increasing cost and decreasing
precision, stopping at the first one that yields a confident match:

1. Exact match on the normalized slug (score 1.0)
2. Full-text match on whole words
3. Trigram similarity, for typos and small spelling variants
4. Semantic nearest-neighbour search over name embeddings
5. LLM disambiguation, only for near-tied or weak-only candidates
6. Fallback creation of a flagged catalog entry (needs_review=True), named
   and tagged by the LLM when one is configured

Full-text runs before trigram because trigram over-matches short queries:
"chin" shares trigrams with "Ab Crunch Machine" but no words.

Ambiguity never fails a request. A name with no confident match becomes
a new flagged exercise whose slug is the same normalized key used by the
exact strategy, so the next occurrence resolves at step 1. Creations in
one resolve_all() call are serialized and first re-run the lexical
strategies, so a name that matches an exercise created moments earlier
by a sibling name reuses it.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from functools import partial
from typing import Callable, Dict, List, Optional, Sequence, Set

from pydantic import ValidationError
from rapidfuzz import fuzz, process, utils

from application.exceptions import LLMServiceError
from application.ports.embedding_service import EmbeddingService
from application.ports.exercise_catalog import ExerciseCatalog
from application.ports.llm_client import LLMClient
from backend.ai.client_factory import AIRequestContext
from backend.ai.llm_client import extract_json_object
from backend.core.normalize import expand_abbreviations, normalize_exercise_name
from backend.settings import Settings
from domain.models.exercise import (
    Exercise,
    ExerciseCandidate,
    ExerciseMetadata,
    ExerciseResolution,
    MatchStrategy,
)

logger = logging.getLogger(__name__)

# Minimum rapidfuzz score for mapping a free-text LLM answer onto a candidate
LLM_ANSWER_MATCH_CUTOFF = 90

DISAMBIGUATION_SYSTEM_PROMPT = (
    "You match exercise names from workout logs to a fitness exercise database. "
    "Answer with a single JSON object and nothing else."
)

DISAMBIGUATION_PROMPT = """An athlete logged an exercise as: "{name}"

Candidate exercises from the database:
{candidates}

Pick the candidate that is the SAME exercise (same movement and equipment).
Treat abbreviations and alternate names as the same exercise ("DB" = dumbbell,
"RDL" = Romanian deadlift). A different variation (e.g. incline vs flat,
barbell vs dumbbell) is NOT the same exercise.

If none of the candidates is the same exercise, answer null so a new
exercise is created.

Respond with JSON:
{{"choice": "<slug of the chosen candidate>" or null, "reason": "<short explanation>"}}"""

CREATION_SYSTEM_PROMPT = """Generate exercise metadata for a fitness exercise.

Given an exercise name as an athlete wrote it, return:
1. name: The proper display name for the exercise
2. tags: 3-6 relevant tags

Tag categories and examples:
- Muscle groups: chest, back, shoulders, biceps, triceps, abs, quads, hamstrings, glutes, calves
- Movement patterns: push, pull, hinge, squat, lunge, carry, rotate
- Equipment: barbell, dumbbell, cable, machine, bodyweight, kettlebell, resistance-band, trx, box, bench
- Exercise type: compound, isolation, plyometric, isometric, unilateral, bilateral
- Difficulty: beginner, intermediate, advanced
- Categories: strength, cardio, flexibility, mobility, warmup, cooldown

Examples:
"Landmine Press" -> {"name": "Landmine Press", "tags": ["chest", "shoulders", "barbell", "push", "compound"]}
"DB Press (alternating)" -> {"name": "Dumbbell Press (Alternating)", "tags": ["chest", "shoulders", "dumbbell", "push", "unilateral"]}
"Box Jumps" -> {"name": "Box Jumps", "tags": ["quads", "glutes", "calves", "plyometric", "box"]}

Answer with a single JSON object and nothing else."""

CREATION_PROMPT = """Exercise name: "{name}"

Respond with JSON:
{{"name": "<display name>", "tags": ["<tag>", ...]}}"""


@dataclass(frozen=True)
class ResolverConfig:
    """Thresholds for the resolution cascade. Scores and distances are 0..1."""

    fulltext_min_score: float = 0.5
    trigram_min_similarity: float = 0.3
    trigram_weak_similarity: float = 0.2
    semantic_max_distance: float = 0.25
    semantic_weak_distance: float = 0.5
    near_tie_margin: float = 0.05
    disambiguation_top_k: int = 5
    max_concurrency: int = 4
    describe_new_exercises: bool = True

    @classmethod
    def from_settings(cls, settings: Settings) -> "ResolverConfig":
        return cls(
            fulltext_min_score=settings.fulltext_min_score,
            trigram_min_similarity=settings.trigram_min_similarity,
            trigram_weak_similarity=settings.trigram_weak_similarity,
            semantic_max_distance=settings.semantic_max_distance,
            semantic_weak_distance=settings.semantic_weak_distance,
            near_tie_margin=settings.near_tie_margin,
            disambiguation_top_k=settings.disambiguation_top_k,
            max_concurrency=settings.resolver_max_concurrency,
            describe_new_exercises=settings.resolver_describe_new_exercises,
        )


@dataclass
class ResolutionQuery:
    """One exercise name prepared for the strategies."""

    raw_name: str
    normalized: str
    expanded: str
    embedding: Optional[List[float]] = None

    @classmethod
    def from_name(cls, raw_name: str) -> "ResolutionQuery":
        name = raw_name.strip()
        return cls(
            raw_name=name,
            normalized=normalize_exercise_name(name),
            expanded=expand_abbreviations(name),
        )


@dataclass
class StrategyOutcome:
    """Candidates from one strategy, split by whether they cleared its threshold."""

    strategy: MatchStrategy
    accepted: List[ExerciseCandidate] = field(default_factory=list)
    weak: List[ExerciseCandidate] = field(default_factory=list)


@dataclass
class CreationBatch:
    """Exercises created during one resolve_all() call."""

    lock: asyncio.Lock = field(default_factory=asyncio.Lock)
    created_ids: Set[str] = field(default_factory=set)


def rank_candidates(candidates: Sequence[ExerciseCandidate]) -> List[ExerciseCandidate]:
    """Higher score first, then lexicographically smaller slug."""
    return sorted(candidates, key=lambda c: (-c.score, c.slug))


def _split(
    strategy: MatchStrategy,
    hits: Sequence[tuple],
    score: Callable[[float], float],
    accept: Callable[[float], bool],
    weak: Callable[[float], bool],
) -> StrategyOutcome:
    outcome = StrategyOutcome(strategy=strategy)
    for exercise, value in hits:
        candidate = ExerciseCandidate.from_exercise(exercise, score(value), strategy)
        if accept(value):
            outcome.accepted.append(candidate)
        elif weak(value):
            outcome.weak.append(candidate)
    outcome.accepted = rank_candidates(outcome.accepted)
    outcome.weak = rank_candidates(outcome.weak)
    return outcome


# -----------------------------------------------------------------------------
# Strategies: (catalog, query, config) -> StrategyOutcome
# -----------------------------------------------------------------------------


def exact_strategy(
    catalog: ExerciseCatalog, query: ResolutionQuery, config: ResolverConfig
) -> StrategyOutcome:
    """Slug lookup, first as written and then with abbreviations expanded."""
    outcome = StrategyOutcome(strategy=MatchStrategy.EXACT)
    keys = dict.fromkeys([query.normalized, normalize_exercise_name(query.expanded)])
    for key in keys:
        if not key:
            continue
        exercise = catalog.lookup_exact(key)
        if exercise is not None:
            outcome.accepted.append(
                ExerciseCandidate.from_exercise(exercise, 1.0, MatchStrategy.EXACT)
            )
            break
    return outcome


def fulltext_strategy(
    catalog: ExerciseCatalog, query: ResolutionQuery, config: ResolverConfig
) -> StrategyOutcome:
    hits = catalog.search_fulltext(query.raw_name, limit=config.disambiguation_top_k * 2)
    return _split(
        MatchStrategy.FULLTEXT,
        hits,
        score=lambda s: s,
        accept=lambda s: s >= config.fulltext_min_score,
        weak=lambda s: s > 0,
    )


def trigram_strategy(
    catalog: ExerciseCatalog, query: ResolutionQuery, config: ResolverConfig
) -> StrategyOutcome:
    hits = catalog.search_trigram(
        query.expanded,
        threshold=config.trigram_weak_similarity,
        limit=config.disambiguation_top_k * 2,
    )
    return _split(
        MatchStrategy.TRIGRAM,
        hits,
        score=lambda s: s,
        accept=lambda s: s >= config.trigram_min_similarity,
        weak=lambda s: s >= config.trigram_weak_similarity,
    )


def semantic_strategy(
    catalog: ExerciseCatalog, query: ResolutionQuery, config: ResolverConfig
) -> StrategyOutcome:
    if query.embedding is None:
        return StrategyOutcome(strategy=MatchStrategy.SEMANTIC)
    hits = catalog.search_semantic(query.embedding, k=config.disambiguation_top_k)
    return _split(
        MatchStrategy.SEMANTIC,
        hits,
        score=lambda distance: 1.0 - distance,
        accept=lambda distance: distance <= config.semantic_max_distance,
        weak=lambda distance: distance <= config.semantic_weak_distance,
    )


Strategy = Callable[[ExerciseCatalog, ResolutionQuery, ResolverConfig], StrategyOutcome]

DEFAULT_STRATEGIES: tuple = (
    exact_strategy,
    fulltext_strategy,
    trigram_strategy,
    semantic_strategy,
)


class ExerciseResolver:
    """
    Resolves exercise names against an exercise catalog.

    The catalog handle is injected per call so a request can resolve
    against its own staging view while sharing one resolver.
    """

    def __init__(
        self,
        config: Optional[ResolverConfig] = None,
        llm_client: Optional[LLMClient] = None,
        embedding_service: Optional[EmbeddingService] = None,
        strategies: Sequence[Strategy] = DEFAULT_STRATEGIES,
    ):
        """
        Initialize the resolver.

        Args:
            config: Cascade thresholds (defaults to ResolverConfig())
            llm_client: Enables LLM disambiguation when provided
            embedding_service: Enables semantic search when provided
            strategies: Ordered strategy functions
        """
        self._config = config or ResolverConfig()
        self._llm = llm_client
        self._embeddings = embedding_service
        self._strategies = tuple(strategies)

    @property
    def config(self) -> ResolverConfig:
        return self._config

    async def resolve_all(
        self,
        names: Sequence[str],
        catalog: ExerciseCatalog,
        context: Optional[AIRequestContext] = None,
    ) -> List[ExerciseResolution]:
        """
        Resolve every name of a workout, in positional order.

        Names with the same normalized form are resolved once and share
        the result. Distinct names run concurrently, bounded by
        config.max_concurrency.

        Args:
            names: Raw exercise names, duplicates allowed
            catalog: Catalog to search and stage creations in
            context: AI request context for observability

        Returns:
            One ExerciseResolution per input name, same order
        """
        semaphore = asyncio.Semaphore(self._config.max_concurrency)
        batch = CreationBatch()
        tasks: Dict[str, asyncio.Future] = {}

        async def bounded(name: str) -> ExerciseResolution:
            async with semaphore:
                return await self.resolve(name, catalog, context, batch=batch)

        for name in names:
            key = normalize_exercise_name(name)
            if key not in tasks:
                tasks[key] = asyncio.ensure_future(bounded(name))

        try:
            await asyncio.gather(*tasks.values())
        except BaseException:
            for task in tasks.values():
                task.cancel()
            raise

        resolved = []
        for name in names:
            shared = tasks[normalize_exercise_name(name)].result()
            resolved.append(shared.model_copy(update={"raw_name": name}))
        logger.info(
            "Resolved %d exercise names (%d distinct, %d new)",
            len(names),
            len(tasks),
            sum(1 for t in tasks.values() if t.result().created),
        )
        return resolved

    async def resolve(
        self,
        raw_name: str,
        catalog: ExerciseCatalog,
        context: Optional[AIRequestContext] = None,
        batch: Optional[CreationBatch] = None,
    ) -> ExerciseResolution:
        """
        Resolve a single exercise name.

        Args:
            raw_name: Exercise name as extracted from the workout text
            catalog: Catalog to search and stage creations in
            context: AI request context for observability
            batch: Creations shared with sibling names of the same workout

        Returns:
            ExerciseResolution naming the matched or created exercise

        Raises:
            ValueError: If the name has no letters or digits
            LLMServiceError: If disambiguation was needed and the LLM failed
        """
        query = ResolutionQuery.from_name(raw_name)
        if not query.normalized:
            raise ValueError(f"Exercise name {raw_name!r} has no letters or digits")
        if batch is None:
            batch = CreationBatch()

        weak_pool: Dict[str, ExerciseCandidate] = {}

        for strategy in self._strategies:
            if strategy is semantic_strategy:
                await self._embed(query)
                try:
                    outcome = await self._run_catalog(strategy, catalog, query, self._config)
                except Exception as e:
                    logger.warning("Semantic search failed for '%s', skipping: %s", query.raw_name, e)
                    continue
            else:
                outcome = await self._run_catalog(strategy, catalog, query, self._config)

            for candidate in outcome.weak:
                best = weak_pool.get(candidate.slug)
                if best is None or candidate.score > best.score:
                    weak_pool[candidate.slug] = candidate

            if not outcome.accepted:
                continue

            top = outcome.accepted[0]
            tied = [c for c in outcome.accepted if top.score - c.score <= self._config.near_tie_margin]
            if len(tied) > 1 and self._llm is not None:
                logger.info(
                    "'%s' has %d near-tied %s candidates, asking LLM",
                    query.raw_name, len(tied), outcome.strategy.value,
                )
                choice = await self._disambiguate(
                    query, outcome.accepted[: self._config.disambiguation_top_k], context
                )
                if choice is None:
                    return await self._create(query, catalog, batch, context)
                return self._matched(query, choice)

            logger.debug(
                "'%s' matched '%s' via %s (%.2f)",
                query.raw_name, top.name, top.strategy.value, top.score,
            )
            return self._matched(query, top)

        if weak_pool and self._llm is not None:
            candidates = rank_candidates(weak_pool.values())[: self._config.disambiguation_top_k]
            logger.info(
                "'%s' has only weak candidates (%d), asking LLM", query.raw_name, len(candidates)
            )
            choice = await self._disambiguate(query, candidates, context)
            if choice is not None:
                return self._matched(query, choice)

        return await self._create(query, catalog, batch, context)

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    async def _run_catalog(self, func, *args):
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, partial(func, *args))

    async def _embed(self, query: ResolutionQuery) -> None:
        if self._embeddings is None or query.embedding is not None:
            return
        try:
            query.embedding = list(await self._embeddings.generate_query_embedding(query.expanded))
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.warning("Embedding failed for '%s', skipping semantic search: %s", query.raw_name, e)

    async def _create(
        self,
        query: ResolutionQuery,
        catalog: ExerciseCatalog,
        batch: CreationBatch,
        context: Optional[AIRequestContext],
    ) -> ExerciseResolution:
        async with batch.lock:
            if batch.created_ids:
                sibling = await self._find_sibling(query, catalog, batch)
                if sibling is not None:
                    logger.info(
                        "'%s' matches '%s' created for this workout", query.raw_name, sibling.name
                    )
                    return self._matched(query, sibling)

            metadata = await self._describe(query, context)
            exercise: Exercise = await self._run_catalog(
                partial(
                    catalog.upsert_by_normalized_slug,
                    query.raw_name,
                    metadata.tags,
                    needs_review=True,
                    embedding=query.embedding,
                    canonical_name=metadata.name,
                )
            )
            batch.created_ids.add(exercise.id)

        logger.info(
            "No confident match for '%s', using flagged exercise %s", query.raw_name, exercise.slug
        )
        return ExerciseResolution(
            raw_name=query.raw_name,
            exercise_id=exercise.id,
            exercise_name=exercise.name,
            strategy=None,
            score=None,
            created=True,
        )

    async def _find_sibling(
        self, query: ResolutionQuery, catalog: ExerciseCatalog, batch: CreationBatch
    ) -> Optional[ExerciseCandidate]:
        """Best accepted lexical candidate among exercises this batch created."""
        for strategy in (fulltext_strategy, trigram_strategy):
            outcome = await self._run_catalog(strategy, catalog, query, self._config)
            for candidate in outcome.accepted:
                if candidate.id in batch.created_ids:
                    return candidate
        return None

    async def _describe(
        self, query: ResolutionQuery, context: Optional[AIRequestContext]
    ) -> ExerciseMetadata:
        """
        Ask the LLM for a display name and tags for a new exercise.

        Failures are logged and yield empty metadata, so the exercise is
        still created under the name as written.
        """
        if self._llm is None or not self._config.describe_new_exercises:
            return ExerciseMetadata()

        llm_context = AIRequestContext(
            user_id=context.user_id if context else None,
            session_id=context.session_id if context else None,
            request_id=context.request_id if context else None,
            feature_name="exercise_creation",
        )
        try:
            text = await self._llm.complete(
                CREATION_PROMPT.format(name=query.raw_name),
                system=CREATION_SYSTEM_PROMPT,
                context=llm_context,
                max_tokens=256,
                json_mode=True,
            )
            return ExerciseMetadata.model_validate(extract_json_object(text))
        except (LLMServiceError, ValueError, ValidationError) as e:
            logger.warning("Could not describe new exercise '%s': %s", query.raw_name, e)
            return ExerciseMetadata()

    @staticmethod
    def _matched(query: ResolutionQuery, candidate: ExerciseCandidate) -> ExerciseResolution:
        return ExerciseResolution(
            raw_name=query.raw_name,
            exercise_id=candidate.id,
            exercise_name=candidate.name,
            strategy=candidate.strategy,
            score=candidate.score,
            created=False,
        )

    async def _disambiguate(
        self,
        query: ResolutionQuery,
        candidates: List[ExerciseCandidate],
        context: Optional[AIRequestContext],
    ) -> Optional[ExerciseCandidate]:
        """
        Ask the LLM to pick one candidate or none.

        Returns:
            The chosen candidate re-labelled with strategy LLM, or None for
            "new exercise"

        Raises:
            LLMServiceError: On transport failure or an unparseable answer
        """
        listing = "\n".join(
            f"- slug: {c.slug} | name: {c.name} | tags: {', '.join(c.tags) or '-'}"
            for c in candidates
        )
        prompt = DISAMBIGUATION_PROMPT.format(name=query.raw_name, candidates=listing)
        llm_context = AIRequestContext(
            user_id=context.user_id if context else None,
            session_id=context.session_id if context else None,
            request_id=context.request_id if context else None,
            feature_name="exercise_disambiguation",
        )

        text = await self._llm.complete(
            prompt,
            system=DISAMBIGUATION_SYSTEM_PROMPT,
            context=llm_context,
            max_tokens=256,
            json_mode=True,
        )
        try:
            answer = extract_json_object(text)
        except ValueError as e:
            raise LLMServiceError(
                f"Malformed disambiguation response for '{query.raw_name}': {e}",
                retryable=True,
            ) from e

        choice = answer.get("choice")
        if choice is None or (isinstance(choice, str) and not choice.strip()):
            logger.info("LLM found no match for '%s': %s", query.raw_name, answer.get("reason"))
            return None
        if not isinstance(choice, str):
            raise LLMServiceError(
                f"Disambiguation choice must be a slug string, got {type(choice).__name__}",
                retryable=True,
            )

        picked = self._match_answer(choice, candidates)
        if picked is None:
            logger.warning(
                "LLM chose '%s' for '%s', which is not a candidate; creating new exercise",
                choice, query.raw_name,
            )
            return None
        return picked.model_copy(update={"strategy": MatchStrategy.LLM})

    @staticmethod
    def _match_answer(
        choice: str, candidates: List[ExerciseCandidate]
    ) -> Optional[ExerciseCandidate]:
        """Map an LLM answer onto a candidate by slug, id, name, then fuzzily."""
        answer = choice.strip()
        for candidate in candidates:
            if answer in (candidate.slug, candidate.id):
                return candidate

        normalized = normalize_exercise_name(answer)
        for candidate in candidates:
            if normalized in (candidate.slug, normalize_exercise_name(candidate.name)):
                return candidate

        names = {candidate.slug: candidate.name for candidate in candidates}
        best = process.extractOne(
            answer, names, scorer=fuzz.token_set_ratio,
            processor=utils.default_process,
            score_cutoff=LLM_ANSWER_MATCH_CUTOFF,
        )
        if best is None:
            return None
        slug = best[2]
        return next(c for c in candidates if c.slug == slug)
