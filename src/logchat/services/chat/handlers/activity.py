"""Activity handlers - streak, specific day, counts and the recent list."""
from datetime import timedelta

from logchat.core.errors import StoreError
from logchat.core.logging import logger
from logchat.models.records import Answer
from logchat.services import notes
from logchat.services.chat.handlers.base import IntentHandler, QueryContext
from logchat.services.formatting import activities, day_str, days_word, format_minutes, minute_str
from logchat.services.intent.classifier import Intent, is_total_count
from logchat.services.time_window import extract_specific_day


class StreakHandler(IntentHandler):
    """Handle streak questions - consecutive days with at least one log."""

    intents = [Intent.STREAK]

    def handle(self, ctx: QueryContext) -> Answer:
        try:
            streak = self.store.compute_streak(ctx.user_id, tz=ctx.tz, today=ctx.now)
        except (StoreError, NotImplementedError) as e:
            logger.warning(f"[Streak] Store cannot compute streak ({e}), scanning recent days")
            streak = self._scan_streak(ctx)
        return self._answer(f"Dein aktueller Streak: {streak} {days_word(streak)}.")

    def _scan_streak(self, ctx: QueryContext) -> int:
        """Walk back from today over the last few months of distinct log dates."""
        scan_days = self.analytics.streak_scan_days
        dates = self.store.log_dates(
            ctx.user_id, since=ctx.now - timedelta(days=scan_days), tz=ctx.tz
        )
        streak = 0
        for i in range(scan_days):
            if day_str(ctx.now - timedelta(days=i), ctx.tz) in dates:
                streak += 1
            else:
                break
        return streak


class SpecificDateHandler(IntentHandler):
    """Handle "on DD.MM[.YYYY]" - lists the logs of exactly that day."""

    intents = [Intent.SPECIFIC_DATE]

    def handle(self, ctx: QueryContext) -> Answer:
        day = extract_specific_day(ctx.text, tz=ctx.tz, now=ctx.now)
        if day is None:
            return self._answer("Kein gültiges Datum erkannt.")

        logs = self.store.fetch_logs(ctx.user_id, since=day.start, until=day.end)
        if not logs:
            return self._answer(f"Keine Aktivitäten am {day.label}.")

        lines = [
            f"- {minute_str(log.occurred_at, ctx.tz)} · {format_minutes(log.duration_min or 0)}"
            f" · +{log.earned_xp} XP · {notes.first_line(log.notes)}"
            for log in logs
        ]
        return self._answer(f"Aktivitäten am {day.label}:\n" + "\n".join(lines))


class CountHandler(IntentHandler):
    """Handle "how many" questions.

    "total"/"overall" ignores the window. An empty window is widened once
    to at least ``widen_days`` and the answer names the wider window.
    """

    intents = [Intent.COUNT]

    def handle(self, ctx: QueryContext) -> Answer:
        if is_total_count(ctx.text):
            total = self.store.count_logs(ctx.user_id)
            return self._answer(f"Insgesamt hast du {total} {activities(total)} erfasst.")

        n = self.store.count_logs(ctx.user_id, since=ctx.window.since, area=ctx.area_name)
        if n > 0:
            return self._answer(self._render(ctx, ctx.days, n))

        wide = ctx.window.widened(self.analytics.widen_days, now=ctx.now)
        n_wide = self.store.count_logs(ctx.user_id, since=wide.since, area=ctx.area_name)
        logger.info(f"[Count] Empty {ctx.days}-day window, widened to {wide.days} days: {n_wide}")

        scope = f" im Bereich {ctx.area_name}" if ctx.area else ""
        if n_wide > 0:
            return self._answer(
                f"In den letzten {ctx.days} Tagen{scope} keine Aktivitäten. "
                f"Im erweiterten Zeitraum (≈{wide.days} Tage) hast du {n_wide} {activities(n_wide)} erfasst."
            )

        total = self.store.count_logs(ctx.user_id)
        return self._answer(
            f"Im gewünschten Zeitraum (≈{wide.days} Tage){scope} keine Aktivitäten. "
            f"Insgesamt hast du {total} {activities(total)} erfasst."
        )

    def _render(self, ctx: QueryContext, days: int, n: int) -> str:
        if ctx.area:
            return f"Im Bereich {ctx.area_name} in den letzten {days} Tagen: {n} {activities(n)}."
        return f"Du hast in den letzten {days} Tagen {n} {activities(n)} erfasst."


class RecentListHandler(IntentHandler):
    """Chronological digest of the most recent logs in the window."""

    intents = [Intent.RECENT_LIST]

    def handle(self, ctx: QueryContext) -> Answer:
        logs = self._window_logs(ctx, limit=self.analytics.recent_limit)
        if not logs:
            return self._answer(f"Keine Daten im Zeitraum der letzten {ctx.days} Tage gefunden.")

        lines = [
            f"- {day_str(log.occurred_at, ctx.tz)} · {format_minutes(log.duration_min or 0)}"
            f" · +{log.earned_xp} XP · {notes.first_line(log.notes)}"
            for log in logs
        ]
        return self._answer(f"Letzte Aktivitäten (ca. {ctx.days} Tage):\n" + "\n".join(lines))
