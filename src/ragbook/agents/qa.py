"""
Retrieval-augmented question answering.

Retrieves the chunks most similar to a question, stuffs them into a single
prompt and has a chat model synthesise a grounded answer.
"""

import logging
import uuid
from collections.abc import Sequence

from langchain_core.documents import Document
from langchain_core.language_models import BaseChatModel
from langchain_core.output_parsers import StrOutputParser
from langchain_core.prompts import ChatPromptTemplate
from langchain_core.runnables import Runnable, RunnableLambda, RunnablePassthrough

from domain_models.config import PipelineConfig
from domain_models.constants import NO_CONTEXT_ANSWER, SNIPPET_LENGTH
from domain_models.manifest import Answer, SourceReference
from ragbook.engines.index import DocumentIndex
from ragbook.exceptions import AnswerGenerationError
from ragbook.llm import async_retrying, retrying
from ragbook.utils.prompts import QA_HUMAN_TEMPLATE, QA_SYSTEM_TEMPLATE

logger = logging.getLogger(__name__)


def default_qa_prompt() -> ChatPromptTemplate:
    return ChatPromptTemplate.from_messages(
        [("system", QA_SYSTEM_TEMPLATE), ("human", QA_HUMAN_TEMPLATE)]
    )


def _page_label(doc: Document) -> str:
    page = doc.metadata.get("page")
    if isinstance(page, int):
        return f"page {page + 1}"
    return str(doc.metadata.get("source", "unknown source"))


def format_documents(documents: Sequence[Document]) -> str:
    """Render retrieved chunks as a numbered context block."""
    return "\n\n".join(
        f"[{i}] ({_page_label(doc)}) {doc.page_content.strip()}"
        for i, doc in enumerate(documents, start=1)
    )


def _source_reference(doc: Document, score: float | None) -> SourceReference:
    page = doc.metadata.get("page")
    text = doc.page_content.strip()
    if len(text) > SNIPPET_LENGTH:
        text = text[:SNIPPET_LENGTH] + "..."
    return SourceReference(
        source=str(doc.metadata.get("source", "")),
        page=page + 1 if isinstance(page, int) else None,
        snippet=text,
        score=score,
    )


class RetrievalQA:
    """
    Answers questions about an indexed corpus.
    """

    def __init__(
        self,
        index: DocumentIndex,
        llm: BaseChatModel,
        config: PipelineConfig | None = None,
        prompt: ChatPromptTemplate | None = None,
    ) -> None:
        """
        Args:
            index: Index to retrieve context from.
            llm: Chat model that writes the answer.
            config: Supplies retrieval_k and retry settings.
            prompt: Custom prompt; must accept ``context`` and ``question`` variables.
        """
        self.index = index
        self.llm = llm
        self.config = config or PipelineConfig()
        self.prompt = prompt or default_qa_prompt()
        missing = {"context", "question"} - set(self.prompt.input_variables)
        if missing:
            msg = f"QA prompt is missing input variables: {sorted(missing)}"
            raise ValueError(msg)
        self.model_name = str(getattr(llm, "model_name", None) or self.config.chat_model)
        self._generate = self.prompt | self.llm | StrOutputParser()

    def as_runnable(self) -> Runnable:
        """The whole pipeline as an LCEL chain mapping a question to an answer string."""
        retriever = self.index.as_retriever(k=self.config.retrieval_k)
        return (
            {
                "context": retriever | RunnableLambda(format_documents),
                "question": RunnablePassthrough(),
            }
            | self.prompt
            | self.llm
            | StrOutputParser()
        )

    def ask(self, question: str, k: int | None = None) -> Answer:
        """
        Answer ``question`` from the indexed documents.

        Raises:
            ValueError: If the question is blank or k < 1.
            AnswerGenerationError: If the chat model call fails.
        """
        request_id = str(uuid.uuid4())
        question = self._check_question(question)
        k = self.config.retrieval_k if k is None else k
        hits = self.index.similarity_search(question, k=k)
        logger.info(f"[{request_id}] Retrieved {len(hits)} chunks for question.")

        if not hits:
            return self._no_context(question)

        inputs = {"context": format_documents([doc for doc, _ in hits]), "question": question}
        try:
            for attempt in retrying(self.config):
                with attempt:
                    self._log_retry(request_id, attempt.retry_state.attempt_number)
                    text = self._generate.invoke(inputs)
        except Exception as e:
            logger.exception(f"[{request_id}] Answer generation failed.")
            msg = f"Answer generation failed: {e}"
            raise AnswerGenerationError(msg) from e

        return self._answer(question, text, hits)

    async def aask(self, question: str, k: int | None = None) -> Answer:
        """Async version of :meth:`ask`."""
        request_id = str(uuid.uuid4())
        question = self._check_question(question)
        k = self.config.retrieval_k if k is None else k
        hits = await self.index.asimilarity_search(question, k=k)
        logger.info(f"[{request_id}] Retrieved {len(hits)} chunks for question.")

        if not hits:
            return self._no_context(question)

        inputs = {"context": format_documents([doc for doc, _ in hits]), "question": question}
        try:
            async for attempt in async_retrying(self.config):
                with attempt:
                    self._log_retry(request_id, attempt.retry_state.attempt_number)
                    text = await self._generate.ainvoke(inputs)
        except Exception as e:
            logger.exception(f"[{request_id}] Answer generation failed.")
            msg = f"Answer generation failed: {e}"
            raise AnswerGenerationError(msg) from e

        return self._answer(question, text, hits)

    def _log_retry(self, request_id: str, attempt_number: int) -> None:
        if attempt_number > 1:
            logger.warning(
                f"[{request_id}] Retrying QA call "
                f"(Attempt {attempt_number}/{self.config.max_retries})"
            )

    @staticmethod
    def _check_question(question: str) -> str:
        if not question or not question.strip():
            msg = "Question cannot be empty."
            raise ValueError(msg)
        return question.strip()

    def _no_context(self, question: str) -> Answer:
        logger.warning("No context retrieved; skipping model call.")
        return Answer(question=question, answer=NO_CONTEXT_ANSWER, model_name=self.model_name)

    def _answer(
        self, question: str, text: str, hits: Sequence[tuple[Document, float]]
    ) -> Answer:
        return Answer(
            question=question,
            answer=text.strip(),
            sources=[_source_reference(doc, score) for doc, score in hits],
            model_name=self.model_name,
        )
