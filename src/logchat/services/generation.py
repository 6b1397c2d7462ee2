"""Generation Fallback - data mode and smalltalk mode prompts."""
from typing import Optional

from logchat.core.config import LLMConfig
from logchat.core.logging import logger
from logchat.models.records import Answer
from logchat.services.ai import Completer
from logchat.services.retrieval import RetrievalResult

DATA_SYSTEM_PROMPT = (
    "Du bist ein strukturierter Assistent für persönliche Aktivitätsdaten. "
    "Antworte kurz, präzise, auf Deutsch, mit klaren Aufzählungen. "
    "Wenn die Datenlage unsicher ist, sag es explizit. "
    "Zähle wenn möglich konkrete Werte (Anzahl, Summen)."
)

SMALLTALK_SYSTEM_PROMPT = (
    "Du bist ein freundlicher Assistent innerhalb einer Produktivitäts-App. "
    "Antworte kurz und hilfreich auf Deutsch. "
    "Wenn der Nutzer nach seinen Daten fragt, erkläre kurz, dass du auf seine Einträge "
    "zugreifen kannst (z. B. \"Fasse meine letzten 7 Tage\")."
)

DATA_INSTRUCTION = (
    "Beantworte präzise auf Basis des Kontextes. "
    "Wenn keine Info vorhanden ist, sage: \"Keine Daten vorhanden.\""
)


def build_data_prompt(context: str, query: str) -> str:
    return f"{DATA_INSTRUCTION}\n\nKontext:\n{context}\n\nFrage: {query}"


class GenerationFallback:
    """Turns a query (and optional context) into a completion-backed answer."""

    def __init__(self, llm: Completer, config: Optional[LLMConfig] = None):
        self.llm = llm
        self.config = config or LLMConfig()

    def answer(self, query: str, retrieval: Optional[RetrievalResult] = None) -> Answer:
        """Data mode when ``retrieval`` carries context, smalltalk otherwise."""
        if retrieval:
            return self.answer_data(query, retrieval)
        return self.answer_smalltalk(query)

    def answer_data(self, query: str, retrieval: RetrievalResult) -> Answer:
        logger.info(f"[Generation] Data mode with {len(retrieval.docs)} documents")
        text = self.llm.complete(
            DATA_SYSTEM_PROMPT,
            build_data_prompt(retrieval.context, query),
            temperature=self.config.data_temperature,
        )
        return Answer(text=text, sources=retrieval.sources)

    def answer_smalltalk(self, query: str) -> Answer:
        logger.info("[Generation] Smalltalk mode")
        text = self.llm.complete(
            SMALLTALK_SYSTEM_PROMPT,
            query,
            temperature=self.config.smalltalk_temperature,
        )
        return Answer(text=text, sources=[])
