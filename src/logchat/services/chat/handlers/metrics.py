"""Metric handlers - XP sum, average duration and total duration."""
from logchat.models.records import Answer
from logchat.services.chat.handlers.base import IntentHandler, QueryContext
from logchat.services.formatting import format_minutes
from logchat.services.intent.classifier import Intent


def _label(base: str, ctx: QueryContext) -> str:
    return f"{base} im Bereich {ctx.area_name}" if ctx.area else base


class XpSumHandler(IntentHandler):
    """Sum of earned XP over the window."""

    intents = [Intent.XP_SUM]

    def handle(self, ctx: QueryContext) -> Answer:
        logs = self._window_logs(ctx, area=ctx.area_name)
        total = sum(log.earned_xp or 0 for log in logs)
        return self._answer(f"{_label('XP', ctx)} in den letzten {ctx.days} Tagen: {total}.")


class AverageDurationHandler(IntentHandler):
    """Mean of the positive durations, rounded to whole minutes."""

    intents = [Intent.AVG_DURATION]

    def handle(self, ctx: QueryContext) -> Answer:
        logs = self._window_logs(ctx, area=ctx.area_name)
        values = [log.duration_min for log in logs if log.duration_min and log.duration_min > 0]
        avg = int(sum(values) / len(values) + 0.5) if values else 0
        return self._answer(
            f"{_label('Ø Dauer', ctx)} in den letzten {ctx.days} Tagen: {format_minutes(avg)}."
        )


class TotalDurationHandler(IntentHandler):
    intents = [Intent.TOTAL_DURATION]

    def handle(self, ctx: QueryContext) -> Answer:
        logs = self._window_logs(ctx, area=ctx.area_name)
        total = sum(log.duration_min or 0 for log in logs)
        return self._answer(
            f"{_label('Gesamtdauer', ctx)} in den letzten {ctx.days} Tagen: {format_minutes(total)}."
        )
