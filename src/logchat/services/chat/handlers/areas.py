"""Area handlers - top areas, focus and per-area summaries."""
from dataclasses import dataclass
from typing import Dict, List

from logchat.core.logging import logger
from logchat.models.records import ActivityLog, Answer
from logchat.services import notes
from logchat.services.areas import topic_word
from logchat.services.chat.handlers.base import IntentHandler, QueryContext
from logchat.services.formatting import activities, capitalize, day_str, format_minutes
from logchat.services.intent.classifier import Intent, wants_duration_metric


@dataclass
class AreaTotals:
    area: str
    count: int = 0
    duration: int = 0


def group_by_area(logs: List[ActivityLog]) -> List[AreaTotals]:
    """Per-area count and summed duration, keyed case-folded.

    Logs without an area are dropped. Groups keep first-seen order so the
    sorts below are stable.
    """
    groups: Dict[str, AreaTotals] = {}
    for log in logs:
        area = notes.area_of(log.notes).strip()
        if not area:
            continue
        key = area.casefold()
        totals = groups.setdefault(key, AreaTotals(area=key))
        totals.count += 1
        totals.duration += log.duration_min or 0
    return list(groups.values())


class TopAreasHandler(IntentHandler):
    """Rank areas by summed duration or by number of logs."""

    intents = [Intent.TOP_AREAS]

    def handle(self, ctx: QueryContext) -> Answer:
        by_duration = wants_duration_metric(ctx.text)
        groups = group_by_area(self._window_logs(ctx))
        if by_duration:
            groups.sort(key=lambda g: g.duration, reverse=True)
        else:
            groups.sort(key=lambda g: g.count, reverse=True)

        top = groups[:self.analytics.top_areas_limit]
        if not top:
            return self._answer("Keine Daten für Top‑Bereiche im Zeitraum.")

        lines = [
            f"{i}. {g.area} – {format_minutes(g.duration) if by_duration else f'{g.count}×'}"
            for i, g in enumerate(top, start=1)
        ]
        return self._answer(f"Top‑Bereiche der letzten {ctx.days} Tage:\n" + "\n".join(lines))


class FocusHandler(IntentHandler):
    """The single area with the most minutes; ties go to the higher count."""

    intents = [Intent.FOCUS]

    def handle(self, ctx: QueryContext) -> Answer:
        groups = group_by_area(self._window_logs(ctx))
        if not groups:
            return self._answer("Keine Aktivitäten im Zeitraum.")

        groups.sort(key=lambda g: (g.duration, g.count), reverse=True)
        top = groups[0]
        return self._answer(
            f"Dein Fokus in den letzten {ctx.days} Tagen lag auf „{top.area}“ "
            f"({top.duration} Min, {top.count} {activities(top.count)})."
        )


class SummarizeAreaHandler(IntentHandler):
    """Bullet digest for one area (resolved user area or a topic word).

    An empty window is widened once, like the count handler.
    """

    intents = [Intent.SUMMARIZE_AREA]

    def handle(self, ctx: QueryContext) -> Answer:
        key = (ctx.area_name or topic_word(ctx.text) or "").lower()
        window = ctx.window
        logs = self._window_logs(ctx, area=key or None)

        widened = False
        if not logs:
            window = ctx.window.widened(self.analytics.widen_days, now=ctx.now)
            logs = self._window_logs(ctx, window=window, area=key or None)
            widened = True
            logger.info(f"[Summary] No '{key}' logs in {ctx.days} days, widened to {window.days}: {len(logs)}")

        count = len(logs)
        total = sum(log.duration_min or 0 for log in logs)
        avg = int(total / count + 0.5) if count else 0
        bullets = [
            f"- {day_str(log.occurred_at, ctx.tz)}: {notes.first_line(log.notes)}"
            for log in logs[:self.analytics.summary_bullets]
        ]

        title = capitalize(key) if key else "Bereich"
        if widened:
            header = f"{title} – keine Einträge in den letzten {ctx.days} Tagen, erweitert auf ≈{window.days} Tage:"
        else:
            header = f"{title} – letzte {window.days} Tage:"

        text = (
            f"{header}\n"
            f"• Aktivitäten: {count}\n"
            f"• Gesamtdauer: {format_minutes(total)}\n"
            f"• Ø Dauer: {format_minutes(avg)}\n"
            + (f"Beispiel‑Notizen:\n" + "\n".join(bullets) if bullets else "Keine Notizen verfügbar.")
        )
        return self._answer(text)
