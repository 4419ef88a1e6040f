import logging
from datetime import datetime
from typing import TYPE_CHECKING, Optional, Sequence, Union

from sqlalchemy.orm import Session

from .commitment import CommitmentDocument, commit
from .draw.engine import Outcome
from .draw.seed import AuxiliaryInput, ScoreValue, normalize_base_seed
from .errors import ConfigMismatch
from .ledger import SeasonLedger, SeasonStatus
from .models import Season, WeekResult, WeekSeed
from .season import SeasonConfig
from .verifier import SeasonVerification, verify_season

if TYPE_CHECKING:
    from .schedule import RevealSchedule
    from .scores.api import FantasyScoresClient
    from .scores.manual import ManualScoreSource

logger = logging.getLogger(__name__)


def create_season(
    session: Session,
    name: str,
    seeds: Sequence[Union[str, bytes]],
    total_quota: int,
    *,
    terminal_override: Optional[Union[Outcome, str]] = None,
    commitment: Optional[str] = None,
) -> Season:
    """Commit ``seeds`` and persist a new season.

    Parameters
    ----------
    session : Session
        Active SQLAlchemy session.
    name : str
        Unique season name.
    seeds : Sequence[Union[str, bytes]]
        One seed per week, week 1 first. The season length is ``len(seeds)``.
    total_quota : int
        Exact number of SAFE weeks the draw must grant.
    terminal_override : Optional[Union[Outcome, str]], default: None
        Outcome recorded for the last week without a draw.
    commitment : Optional[str], default: None
        Previously published digest. When given, ``seeds`` must reproduce it.

    Returns
    -------
    Season
        The persisted season with its seeds.

    Raises
    ------
    ConfigMismatch
        If the parameters are invalid or ``seeds`` do not match ``commitment``.
    ValueError
        If a season called ``name`` already exists.
    """

    normalized = [normalize_base_seed(seed) for seed in seeds]
    config = SeasonConfig(
        total_weeks=len(normalized),
        total_quota=total_quota,
        terminal_override=terminal_override,
    )
    digest = commit(normalized, total_weeks=config.total_weeks)
    if commitment is not None and digest != commitment.strip().lower():
        raise ConfigMismatch("Seeds do not reproduce the published commitment")
    if Season.get_by_name(session, name) is not None:
        raise ValueError(f"Season {name!r} already exists")

    season = Season(
        name=name,
        total_weeks=config.total_weeks,
        total_quota=config.total_quota,
        commitment=digest,
        terminal_override=(
            config.terminal_override.value if config.terminal_override else None
        ),
    )
    session.add(season)
    session.flush()

    session.add_all(
        WeekSeed(season_id=season.id, week=week, seed=seed)
        for week, seed in enumerate(normalized, start=1)
    )
    session.flush()
    session.refresh(season)

    logger.info(
        f"Season {name!r} committed: {config.total_weeks} weeks, "
        f"quota {config.total_quota}, commitment {digest}"
    )
    return season


def import_commitment_document(
    session: Session,
    name: str,
    document: CommitmentDocument,
    total_quota: int,
    *,
    terminal_override: Optional[Union[Outcome, str]] = None,
) -> Season:
    """Create a season from a publication document, checking its digest."""
    return create_season(
        session,
        name,
        document.seeds,
        total_quota,
        terminal_override=terminal_override,
        commitment=document.commitment,
    )


def publish_commitment(season: Season) -> dict:
    """Return the digest-only document safe to publish before week 1."""
    return {"commitment": season.commitment, "weeks": {}}


def reveal_week(
    session: Session,
    season: Season,
    week: int,
    lowest_score: Optional[ScoreValue] = None,
    lowest_scorer: Optional[str] = None,
    *,
    revealed_at: Optional[datetime] = None,
) -> WeekResult:
    """Reveal ``week`` of ``season`` with the week's lowest score.

    This function wraps :meth:`SeasonLedger.reveal_week`; repeated calls for
    a revealed week return the stored result.
    """

    ledger = SeasonLedger(session, season)
    aux = AuxiliaryInput(score=lowest_score, scorer=lowest_scorer)
    result = ledger.reveal_week(week, aux, revealed_at=revealed_at)
    session.flush()
    return result


def reveal_from_source(
    session: Session,
    season: Season,
    week: int,
    source: Union["ManualScoreSource", "FantasyScoresClient"],
) -> Optional[WeekResult]:
    """Reveal ``week`` using the lowest score reported by ``source``.

    Returns ``None`` without touching the ledger when the source has no score
    for the week yet.
    """

    aux = source.lowest_score(week)
    if aux is None:
        logger.info(f"No lowest score available for week {week}; reveal deferred")
        return None
    return SeasonLedger(session, season).reveal_week(week, aux)


def reveal_due_week(
    session: Session,
    season: Season,
    schedule: "RevealSchedule",
    source: Union["ManualScoreSource", "FantasyScoresClient"],
    *,
    now: Optional[datetime] = None,
) -> Optional[WeekResult]:
    """Reveal the week whose window has opened, if its score is available."""
    ledger = SeasonLedger(session, season)
    revealed = {result.week for result in ledger.results()}
    week = schedule.due_week(revealed, now)
    if week is None:
        return None
    return reveal_from_source(session, season, week, source)


def season_status(session: Session, season: Season) -> SeasonStatus:
    return SeasonLedger(session, season).status()


def export_results(session: Session, season: Season) -> list[dict]:
    """Return the season's published results in ascending week order."""
    return [result.to_dict() for result in SeasonLedger(session, season).results()]


def verify_published_season(session: Session, season: Season) -> SeasonVerification:
    """Replay a stored season exactly as an outside observer would."""
    return verify_season(
        season.commitment_document(),
        season.config,
        export_results(session, season),
    )
