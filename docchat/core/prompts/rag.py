"""RAG prompt templates and the builder that fills them with retrieved chunks."""

from typing import Optional, Sequence
from xml.sax.saxutils import escape, quoteattr

from langchain_core.prompts import PromptTemplate

from docchat.models.documents import Chunk

NO_INFORMATION_ANSWER = "I don't have information about that in the documentation"

RAG_SYSTEM_TEMPLATE = """<system>
You are a helpful assistant that answers questions based on provided documentation.
Your goal is to give accurate, concise answers using only the information provided.
</system>

{documents}

<instructions>
- Answer the user's question using ONLY the information from the documents above
- If the documentation doesn't contain the answer, say "{no_information_answer}"
- Be concise and helpful
- When relevant, mention which document section supports your answer (e.g., "According to the Installation guide...")
- If multiple documents are relevant, synthesize the information into a coherent answer
</instructions>
{history}
<question>
{question}
</question>

Please provide your answer:"""

HISTORY_TEMPLATE = """
<conversation_history>
{history}
</conversation_history>
"""

_XML_ENTITIES = {'"': "&quot;", "'": "&apos;"}


def get_rag_prompt() -> PromptTemplate:
    return PromptTemplate(
        template=RAG_SYSTEM_TEMPLATE,
        input_variables=["documents", "history", "question"],
        partial_variables={"no_information_answer": NO_INFORMATION_ANSWER},
    )


def escape_xml(text: str) -> str:
    """Escape the five XML special characters."""
    return escape(text, _XML_ENTITIES)


class PromptBuilder:
    """Builds XML-structured prompts for answer generation.

    Sections: ``<system>`` (role), ``<documents>`` (retrieved chunks),
    ``<instructions>`` (answer only from the documents), an optional
    ``<conversation_history>`` and ``<question>``.
    """

    def __init__(self, template: Optional[PromptTemplate] = None):
        self.template = template or get_rag_prompt()

    def build_rag_prompt(
        self,
        question: str,
        chunks: Sequence[Chunk],
        history: Optional[str] = None,
    ) -> str:
        """Render the prompt for ``question`` grounded on ``chunks``.

        Args:
            question: The user's question.
            chunks: Retrieved chunks, most relevant first.
            history: Pre-formatted earlier turns of the conversation.
        """
        history_section = ""
        if history:
            history_section = HISTORY_TEMPLATE.format(history=escape_xml(history.strip()))

        return self.template.format(
            documents=self.build_documents_section(chunks),
            history=history_section,
            question=escape_xml(question.strip()),
        )

    @staticmethod
    def build_documents_section(chunks: Sequence[Chunk]) -> str:
        tags = []
        for position, chunk in enumerate(chunks, start=1):
            heading = chunk.metadata.heading or "No heading"
            tags.append(
                f"  <document id=\"{position}\" heading={quoteattr(heading)} "
                f"source={quoteattr(chunk.metadata.source)}>\n"
                f"{escape_xml(chunk.text.strip())}\n"
                f"  </document>"
            )

        return "<documents>\n" + "\n\n".join(tags) + "\n</documents>"
