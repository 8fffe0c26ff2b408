"""Retrieved context supplied to the diagnosis step.

The retrieval collaborator ranks and embeds; the core only needs the four
evidence kinds and their precedence when rendering the prompt.
"""

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field


class ContextKind(str, Enum):
    """Evidence kinds, highest precedence first."""

    PAST_RESOLUTION = "past_resolution"
    VERIFIED_DIAGNOSIS = "verified_diagnosis"
    RUNBOOK_PROCEDURE = "runbook_procedure"
    SIMILAR_INCIDENT = "similar_incident"


SECTION_TITLES = {
    ContextKind.PAST_RESOLUTION: "Past Resolutions",
    ContextKind.VERIFIED_DIAGNOSIS: "Verified Diagnoses",
    ContextKind.RUNBOOK_PROCEDURE: "Runbook Procedures",
    ContextKind.SIMILAR_INCIDENT: "Similar Incidents",
}


class ContextSnippet(BaseModel):
    """One retrieved item."""

    reference: str = Field(description="Identifier of the source record (incident id, runbook fragment id, ...)")
    text: str
    score: Optional[float] = Field(default=None, ge=0.0, le=1.0)


class RetrievalContext(BaseModel):
    """Context assembled by the retrieval collaborator."""

    past_resolutions: List[ContextSnippet] = Field(default_factory=list)
    verified_diagnoses: List[ContextSnippet] = Field(default_factory=list)
    runbook_fragments: List[ContextSnippet] = Field(default_factory=list)
    similar_incidents: List[ContextSnippet] = Field(default_factory=list)

    def by_kind(self, kind: ContextKind) -> List[ContextSnippet]:
        return {
            ContextKind.PAST_RESOLUTION: self.past_resolutions,
            ContextKind.VERIFIED_DIAGNOSIS: self.verified_diagnoses,
            ContextKind.RUNBOOK_PROCEDURE: self.runbook_fragments,
            ContextKind.SIMILAR_INCIDENT: self.similar_incidents,
        }[kind]

    @property
    def is_empty(self) -> bool:
        return not any(self.by_kind(kind) for kind in ContextKind)

    def render(self) -> str:
        """Render non-empty sections in precedence order."""
        sections = []
        for kind in ContextKind:
            snippets = self.by_kind(kind)
            if not snippets:
                continue
            body = "\n---\n".join(_render_snippet(s) for s in snippets)
            sections.append(f"=== {SECTION_TITLES[kind]} ===\n{body}")
        return "\n\n".join(sections)


def _render_snippet(snippet: ContextSnippet) -> str:
    header = f"ID: {snippet.reference}"
    if snippet.score is not None:
        header += f", Score: {snippet.score:.2f}"
    return f"{header}\n{snippet.text.strip()}"
