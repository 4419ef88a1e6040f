from __future__ import annotations

import random
import tempfile
import threading
import unittest
from datetime import datetime, timezone
from decimal import Decimal
from pathlib import Path
from unittest.mock import patch

from sqlalchemy import create_engine, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import sessionmaker

from fairdraw.db import get_sessionmaker, make_engine
from fairdraw.draw import AuxiliaryInput, Outcome, build_full_seed
from fairdraw.errors import (
    AlreadyRevealed,
    ConfigMismatch,
    OutOfOrder,
    ProtocolViolation,
    SeedUnavailable,
)
from fairdraw.ledger import SeasonLedger, season_lock
from fairdraw.models import Base, Season, WeekResult, WeekSeed
from fairdraw.verifier import verify
from fairdraw.workflows import create_season

SEEDS_2025 = [f"MNF_2025_W{week:02d}_8:15PM_ET" for week in range(1, 18)]


class LedgerTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self.engine = create_engine("sqlite+pysqlite:///:memory:", future=True)
        Base.metadata.create_all(self.engine)
        self.Session = sessionmaker(
            bind=self.engine, future=True, expire_on_commit=False
        )

    def tearDown(self) -> None:
        self.engine.dispose()

    def _reveal_all(self, session, season: Season, rng: random.Random) -> list[WeekResult]:
        ledger = SeasonLedger(session, season)
        results = []
        for week in range(1, season.total_weeks + 1):
            score = round(rng.uniform(40, 130), rng.choice([0, 1, 2]))
            results.append(ledger.reveal_week(week, AuxiliaryInput(score, f"team-{week}")))
        return results


class RevealTests(LedgerTestCase):
    def test_full_season_grants_exact_quota(self) -> None:
        rng = random.Random(17)
        with self.Session.begin() as session:
            for index in range(12):
                total_weeks = rng.randint(1, 18)
                quota = rng.randint(0, total_weeks)
                seeds = [f"S{index}-W{w}-{rng.random()}" for w in range(total_weeks)]
                season = create_season(session, f"season-{index}", seeds, quota)

                results = self._reveal_all(session, season, rng)

                self.assertEqual(sum(r.is_safe for r in results), quota)
                self.assertEqual([r.week for r in results], list(range(1, total_weeks + 1)))
                status = SeasonLedger(session, season).status()
                self.assertEqual(status.safes_used, quota)
                self.assertEqual(status.safes_remaining, 0)
                self.assertEqual(status.weeks_remaining, 0)
                self.assertIsNone(status.next_week)

    def test_reveal_records_draw_details(self) -> None:
        with self.Session.begin() as session:
            season = create_season(session, "2025", SEEDS_2025, 5)
            ledger = SeasonLedger(session, season)
            when = datetime(2025, 9, 9, 4, 0, tzinfo=timezone.utc)

            result = ledger.reveal_week(1, AuxiliaryInput(85.4, "Alice"), revealed_at=when)

            self.assertEqual(result.week, 1)
            self.assertEqual(result.base_seed, SEEDS_2025[0])
            self.assertEqual(result.full_seed, f"{SEEDS_2025[0]}_LOWEST_SCORE_85.4")
            self.assertEqual(result.lowest_score, 85.4)
            self.assertEqual(result.lowest_scorer, "Alice")
            self.assertEqual(result.quota_remaining_before, 5)
            self.assertEqual(result.weeks_remaining_before, 17)
            self.assertEqual(result.probability, 29.4)
            self.assertIsNotNone(result.hash_hex)
            self.assertFalse(result.is_override)
            self.assertEqual(result.revealed_at, when)

    def test_integer_and_float_scores_build_the_same_seed(self) -> None:
        with self.Session.begin() as session:
            season = create_season(session, "ints", SEEDS_2025[:3], 1)
            result = SeasonLedger(session, season).reveal_week(1, AuxiliaryInput(100))
            self.assertEqual(result.full_seed, f"{SEEDS_2025[0]}_LOWEST_SCORE_100")
            self.assertEqual(result.lowest_score, 100.0)

    def test_repeated_reveal_returns_stored_result(self) -> None:
        with self.Session.begin() as session:
            season = create_season(session, "2025", SEEDS_2025, 5)
            ledger = SeasonLedger(session, season)
            first = ledger.reveal_week(1, AuxiliaryInput(90, "Alice"))
            state_after_first = ledger.state()

            with patch("fairdraw.ledger.draw") as mocked_draw:
                with self.assertLogs("fairdraw.ledger", level="WARNING"):
                    second = ledger.reveal_week(1, AuxiliaryInput(75, "Bob"))
                mocked_draw.assert_not_called()

            self.assertIs(second, first)
            self.assertEqual(second.lowest_score, 90.0)
            self.assertEqual(ledger.state(), state_after_first)
            count = session.scalar(
                select(func.count(WeekResult.id)).where(WeekResult.season_id == season.id)
            )
            self.assertEqual(count, 1)

    def test_strict_repeat_raises_already_revealed(self) -> None:
        with self.Session.begin() as session:
            season = create_season(session, "2025", SEEDS_2025, 5)
            ledger = SeasonLedger(session, season)
            first = ledger.reveal_week(1, AuxiliaryInput(90, "Alice"))
            with self.assertRaises(AlreadyRevealed) as ctx:
                ledger.reveal_week(1, AuxiliaryInput(90, "Alice"), raise_if_revealed=True)
            self.assertIs(ctx.exception.result, first)

    def test_out_of_order_reveal_is_rejected(self) -> None:
        with self.Session.begin() as session:
            season = create_season(session, "2025", SEEDS_2025, 5)
            ledger = SeasonLedger(session, season)
            with self.assertRaises(OutOfOrder) as ctx:
                ledger.reveal_week(3, AuxiliaryInput(80, "Alice"))
            self.assertEqual(ctx.exception.next_week, 1)

            ledger.reveal_week(1, AuxiliaryInput(80, "Alice"))
            with self.assertRaises(OutOfOrder):
                ledger.reveal_week(3, AuxiliaryInput(80, "Alice"))
            self.assertEqual(len(ledger.results()), 1)

    def test_missing_seed_is_reported(self) -> None:
        with self.Session.begin() as session:
            season = create_season(session, "short", SEEDS_2025[:3], 1)
            ledger = SeasonLedger(session, season)
            with self.assertRaises(SeedUnavailable):
                ledger.reveal_week(4)

            session.execute(
                WeekSeed.__table__.delete().where(
                    WeekSeed.season_id == season.id, WeekSeed.week == 1
                )
            )
            with self.assertRaises(SeedUnavailable):
                ledger.reveal_week(1)

    def test_invalid_week_argument(self) -> None:
        with self.Session.begin() as session:
            season = create_season(session, "2025", SEEDS_2025, 5)
            with self.assertRaises(ValueError):
                SeasonLedger(session, season).reveal_week(0)

    def test_seed_only_reveal(self) -> None:
        with self.Session.begin() as session:
            season = create_season(session, "bare", SEEDS_2025[:4], 2)
            result = SeasonLedger(session, season).reveal_week(1)
            self.assertEqual(result.full_seed, SEEDS_2025[0])
            self.assertIsNone(result.lowest_score)

    def test_full_seed_uses_the_disclosed_score_text(self) -> None:
        with self.Session.begin() as session:
            season = create_season(session, "exact", SEEDS_2025[:4], 2)
            aux = AuxiliaryInput(Decimal("72.360"), "Bob")
            result = SeasonLedger(session, season).reveal_week(1, aux)
            self.assertEqual(result.full_seed, build_full_seed(SEEDS_2025[0], aux))
            self.assertTrue(
                verify(1, SEEDS_2025[0], aux, result.outcome, 2, 4)
            )

    def test_scores_the_column_cannot_hold_are_rejected(self) -> None:
        with self.Session.begin() as session:
            season = create_season(session, "precise", SEEDS_2025[:4], 2)
            ledger = SeasonLedger(session, season)
            for score in (Decimal("85.123456789012345678"), 10**17 + 1):
                with self.assertRaises(ValueError):
                    ledger.reveal_week(1, AuxiliaryInput(score, "Alice"))
            self.assertEqual(ledger.results(), [])

            result = ledger.reveal_week(1, AuxiliaryInput(10**17, "Alice"))
            self.assertEqual(
                result.full_seed, f"{SEEDS_2025[0]}_LOWEST_SCORE_100000000000000000"
            )


class TerminalOverrideTests(LedgerTestCase):
    def test_terminal_chop_skips_the_draw(self) -> None:
        rng = random.Random(2025)
        with self.Session.begin() as session:
            season = create_season(session, "2025", SEEDS_2025, 5, terminal_override="CHOP")
            self.assertEqual(season.config.draw_weeks, 16)

            results = self._reveal_all(session, season, rng)

            drawn = [r for r in results if not r.is_override]
            self.assertEqual(len(drawn), 16)
            self.assertEqual(sum(r.is_safe for r in drawn), 5)
            last = results[-1]
            self.assertTrue(last.is_override)
            self.assertIs(last.outcome, Outcome.CHOP)
            self.assertIsNone(last.hash_hex)
            self.assertIsNone(last.quota_remaining_before)
            self.assertEqual(results[0].weeks_remaining_before, 16)

    def test_terminal_safe_does_not_count_toward_quota(self) -> None:
        rng = random.Random(7)
        with self.Session.begin() as session:
            season = create_season(session, "safe-end", SEEDS_2025[:6], 2, terminal_override="SAFE")
            results = self._reveal_all(session, season, rng)
            self.assertTrue(results[-1].is_safe)
            self.assertEqual(sum(r.is_safe for r in results), 3)
            self.assertEqual(SeasonLedger(session, season).status().safes_used, 2)

    def test_quota_must_fit_draw_weeks(self) -> None:
        with self.Session.begin() as session:
            with self.assertRaises(ConfigMismatch):
                create_season(session, "too-many", SEEDS_2025[:3], 3, terminal_override="CHOP")


class HistoryTests(LedgerTestCase):
    def test_gap_in_history_is_a_protocol_violation(self) -> None:
        with self.Session.begin() as session:
            season = create_season(session, "2025", SEEDS_2025, 5)
            session.add(
                WeekResult(
                    season_id=season.id,
                    week=2,
                    base_seed=SEEDS_2025[1],
                    full_seed=SEEDS_2025[1],
                    is_safe=True,
                )
            )
            session.flush()
            with self.assertLogs("fairdraw.ledger", level="CRITICAL"):
                with self.assertRaises(ProtocolViolation):
                    SeasonLedger(session, season).state()

    def test_state_is_folded_from_results(self) -> None:
        with self.Session.begin() as session:
            season = create_season(session, "2025", SEEDS_2025, 5)
            ledger = SeasonLedger(session, season)
            for week in range(1, 5):
                ledger.reveal_week(week, AuxiliaryInput(60 + week, "x"))

            state = ledger.state()
            safes = sum(r.is_safe for r in ledger.results())
            self.assertEqual(state.weeks_revealed, 4)
            self.assertEqual(state.quota_used, safes)
            self.assertEqual(ledger.counters_for(5), (5 - safes, 13))
            with self.assertRaises(OutOfOrder):
                ledger.counters_for(7)

    def test_unpersisted_season_is_rejected(self) -> None:
        season = Season(name="draft", total_weeks=3, total_quota=1, commitment="0" * 64)
        with self.Session() as session:
            with self.assertRaises(ValueError):
                SeasonLedger(session, season)


def _flush_with_conflict(session, error: IntegrityError):
    """Make ``session.flush`` fail like a concurrent insert of the same week."""
    real_flush = session.flush

    def flush(objects=None):
        if any(isinstance(obj, WeekResult) for obj in session.new):
            raise error
        return real_flush(objects)

    return patch.object(session, "flush", side_effect=flush)


class ConcurrentRevealTests(LedgerTestCase):
    def _committed_season(self) -> int:
        with self.Session.begin() as session:
            return create_season(session, "race", SEEDS_2025[:4], 2).id

    def test_season_lock_is_shared_per_season(self) -> None:
        self.assertIs(season_lock(101), season_lock(101))
        self.assertIsNot(season_lock(101), season_lock(102))

    def test_lost_insert_race_returns_the_winner(self) -> None:
        season_id = self._committed_season()
        winner = WeekResult(
            season_id=season_id,
            week=1,
            base_seed=SEEDS_2025[0],
            full_seed=f"{SEEDS_2025[0]}_LOWEST_SCORE_88",
            is_safe=True,
            lowest_score=88.0,
        )
        conflict = IntegrityError("INSERT INTO week_results", {}, Exception("UNIQUE"))

        with self.Session() as session:
            ledger = SeasonLedger(session, session.get(Season, season_id))
            with patch.object(ledger, "result_for", side_effect=[None, winner]):
                with _flush_with_conflict(session, conflict):
                    result = ledger.reveal_week(1, AuxiliaryInput(88, "Alice"))
            self.assertIs(result, winner)

        with self.Session() as session:
            count = session.scalar(select(func.count(WeekResult.id)))
            self.assertEqual(count, 0)

    def test_integrity_error_without_stored_row_propagates(self) -> None:
        season_id = self._committed_season()
        conflict = IntegrityError("INSERT INTO week_results", {}, Exception("NOT NULL"))

        with self.Session() as session:
            ledger = SeasonLedger(session, session.get(Season, season_id))
            with patch.object(ledger, "result_for", return_value=None):
                with _flush_with_conflict(session, conflict):
                    with self.assertRaises(IntegrityError):
                        ledger.reveal_week(1, AuxiliaryInput(88, "Alice"))

    def test_lost_race_inside_caller_transaction(self) -> None:
        season_id = self._committed_season()
        winner = WeekResult(
            season_id=season_id,
            week=1,
            base_seed=SEEDS_2025[0],
            full_seed=f"{SEEDS_2025[0]}_LOWEST_SCORE_88",
            is_safe=False,
            lowest_score=88.0,
        )
        conflict = IntegrityError("INSERT INTO week_results", {}, Exception("UNIQUE"))

        with self.Session.begin() as session:
            ledger = SeasonLedger(session, session.get(Season, season_id))
            with patch.object(ledger, "result_for", side_effect=[None, winner]) as lookup:
                with _flush_with_conflict(session, conflict):
                    result = ledger.reveal_week(1, AuxiliaryInput(88, "Alice"))
            self.assertIs(result, winner)
            # The winner is re-read outside the rolled-back session.
            self.assertIsNot(lookup.call_args.kwargs["session"], session)


class ThreadedRevealTests(unittest.TestCase):
    WORKERS = 4

    def setUp(self) -> None:
        self._tmpdir = tempfile.TemporaryDirectory()
        self.engine = make_engine(f"sqlite:///{Path(self._tmpdir.name) / 'race.db'}")
        Base.metadata.create_all(self.engine)
        self.Session = get_sessionmaker(self.engine)

    def tearDown(self) -> None:
        self.engine.dispose()
        self._tmpdir.cleanup()

    def test_parallel_reveals_store_one_row(self) -> None:
        with self.Session.begin() as session:
            season_id = create_season(session, "race", SEEDS_2025[:4], 2).id

        barrier = threading.Barrier(self.WORKERS)
        outcomes = []
        errors = []

        def reveal() -> None:
            try:
                barrier.wait()
                with self.Session.begin() as session:
                    ledger = SeasonLedger(session, session.get(Season, season_id))
                    result = ledger.reveal_week(1, AuxiliaryInput(88, "Alice"))
                    outcomes.append((result.week, result.is_safe, result.full_seed))
            except Exception as exc:
                errors.append(exc)

        threads = [threading.Thread(target=reveal) for _ in range(self.WORKERS)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=60)

        self.assertEqual(errors, [])
        self.assertEqual(len(outcomes), self.WORKERS)
        self.assertEqual(len(set(outcomes)), 1)
        with self.Session() as session:
            count = session.scalar(select(func.count(WeekResult.id)))
            self.assertEqual(count, 1)
            stored = session.scalar(select(WeekResult))
            self.assertEqual(outcomes[0], (stored.week, stored.is_safe, stored.full_seed))


if __name__ == "__main__":
    unittest.main()
