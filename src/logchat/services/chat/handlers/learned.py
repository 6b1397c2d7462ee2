"""Learned-from-source handler - excerpts of notes mentioning a title."""
from typing import List

from logchat.models.records import Answer
from logchat.services import notes
from logchat.services.chat.handlers.base import IntentHandler, QueryContext
from logchat.services.intent.classifier import Intent, extract_source_phrase


class LearnedFromSourceHandler(IntentHandler):
    """Search raw notes for a book/source title and quote their first lines."""

    intents = [Intent.LEARNED_FROM_SOURCE]

    def handle(self, ctx: QueryContext) -> Answer:
        phrase = extract_source_phrase(ctx.query) or extract_source_phrase(ctx.text) or ""
        logs = self.store.search_notes(ctx.user_id, phrase, limit=self.analytics.learned_scan_limit)

        snippets: List[str] = []
        for log in logs:
            line = notes.first_nonblank_line(log.notes)
            if not line or line in snippets:
                continue
            snippets.append(line)
            if len(snippets) >= self.analytics.learned_snippets:
                break

        if not snippets:
            return self._answer(f"Keine expliziten Notizen zu „{phrase}“ gefunden.")
        return self._answer(
            f"Deine Notizen zu „{phrase}“ (Auszug):\n" + "\n".join(f"- {s}" for s in snippets)
        )
