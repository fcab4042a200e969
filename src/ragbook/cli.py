import json
import logging
import sys
from pathlib import Path
from typing import Annotated, NoReturn, Optional

import typer

from domain_models.config import PipelineConfig
from domain_models.constants import DEFAULT_SAMPLE_PDF
from domain_models.examples import Actor
from ragbook.engines.embedder import build_embeddings
from ragbook.engines.index import DocumentIndex
from ragbook.engines.token_splitter import TokenTextSplitter
from ragbook.exceptions import RagbookError
from ragbook.llm import build_chat_model
from ragbook.parsers.output_fixer import OutputFixingParser
from ragbook.pipeline import answer_question, build_index_from_pdf
from ragbook.utils.io import read_file

# Configure logging to stderr so it doesn't interfere with stdout output
logging.basicConfig(
    level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

app = typer.Typer(
    name="ragbook",
    help="ragbook: Structured output repair, token splitting and PDF question answering.",
    add_completion=False,
)

DEFAULT_CONFIG = PipelineConfig.default()


def _fail_with_error(message: str) -> NoReturn:
    """Centralized error handling: Log error and exit with code 1."""
    typer.echo(message, err=True)
    logger.error(message)
    raise typer.Exit(code=1)


def _read_text(path: Path, config: PipelineConfig) -> str:
    try:
        return read_file(path, config.max_file_size_bytes)
    except (OSError, ValueError) as e:
        _fail_with_error(f"Error reading file: {e}")


ExistingFile = Annotated[
    Path,
    typer.Argument(
        exists=True,
        file_okay=True,
        dir_okay=False,
        readable=True,
        help="Path to the input text file.",
    ),
]


@app.command()
def count(
    input_file: ExistingFile,
    tokenizer: Annotated[
        str, typer.Option("--tokenizer", "-t", help="Tokenizer encoding name.")
    ] = DEFAULT_CONFIG.tokenizer_model,
) -> None:
    """
    Print the number of tokens in a text file.
    """
    try:
        config = PipelineConfig(tokenizer_model=tokenizer)
        splitter = TokenTextSplitter(config)
    except ValueError as e:
        _fail_with_error(f"Invalid configuration: {e}")

    text = _read_text(input_file, config)
    typer.echo(str(splitter.count_tokens(text)))


@app.command()
def split(
    input_file: ExistingFile,
    chunk_size: Annotated[
        int, typer.Option("--chunk-size", "-s", help="Max tokens per chunk.")
    ] = DEFAULT_CONFIG.token_chunk_size,
    overlap: Annotated[
        int, typer.Option("--overlap", help="Tokens shared by consecutive chunks.")
    ] = DEFAULT_CONFIG.token_overlap,
    tokenizer: Annotated[
        str, typer.Option("--tokenizer", "-t", help="Tokenizer encoding name.")
    ] = DEFAULT_CONFIG.tokenizer_model,
    as_json: Annotated[
        bool, typer.Option("--json", help="Emit chunks as a JSON array.")
    ] = False,
) -> None:
    """
    Split a text file into token-bounded chunks.
    """
    try:
        config = PipelineConfig(
            token_chunk_size=chunk_size, token_overlap=overlap, tokenizer_model=tokenizer
        )
        splitter = TokenTextSplitter(config)
    except ValueError as e:
        _fail_with_error(f"Invalid configuration: {e}")

    text = _read_text(input_file, config)
    chunks = list(splitter.create_chunks(text, metadata={"source": str(input_file)}))

    if as_json:
        typer.echo(json.dumps([c.model_dump() for c in chunks], ensure_ascii=False, indent=2))
        return

    for chunk in chunks:
        typer.echo(f"--- chunk {chunk.index} ({chunk.token_count} tokens) ---")
        typer.echo(chunk.text)
    typer.echo(f"{len(chunks)} chunks")


@app.command()
def fix(
    input_file: Annotated[
        str, typer.Argument(help="File holding the malformed completion, or '-' for stdin.")
    ],
    model: Annotated[
        str, typer.Option("--model", "-m", help="Model used to repair the output.")
    ] = DEFAULT_CONFIG.fixing_model,
    attempts: Annotated[
        int, typer.Option("--attempts", "-a", help="Repair rounds before giving up.")
    ] = DEFAULT_CONFIG.max_fix_attempts,
) -> None:
    """
    Repair a model completion so it parses as an Actor record.
    """
    try:
        config = PipelineConfig(fixing_model=model, max_fix_attempts=attempts)
    except ValueError as e:
        _fail_with_error(f"Invalid configuration: {e}")

    completion = sys.stdin.read() if input_file == "-" else _read_text(Path(input_file), config)

    try:
        llm = build_chat_model(config.fixing_model, config)
        parser = OutputFixingParser.from_llm(llm, Actor, config=config)
        actor = parser.parse(completion)
    except RagbookError as e:
        _fail_with_error(f"Could not repair output: {e}")

    typer.echo(actor.model_dump_json(indent=2))


@app.command()
def ingest(
    pdf_file: Annotated[
        Path,
        typer.Argument(
            exists=True, file_okay=True, dir_okay=False, readable=True,
            help=f"PDF to index (e.g. {DEFAULT_SAMPLE_PDF}).",
        ),
    ],
    output: Annotated[
        Path, typer.Option("--output", "-o", help="Where to write the index JSON.")
    ] = Path("index.json"),
    chunk_size: Annotated[
        int, typer.Option("--chunk-size", "-s", help="Max characters per chunk.")
    ] = DEFAULT_CONFIG.chunk_size,
    chunk_overlap: Annotated[
        int, typer.Option("--chunk-overlap", help="Characters shared by consecutive chunks.")
    ] = DEFAULT_CONFIG.chunk_overlap,
) -> None:
    """
    Build a vector index from a PDF and save it.
    """
    try:
        config = PipelineConfig(chunk_size=chunk_size, chunk_overlap=chunk_overlap)
    except ValueError as e:
        _fail_with_error(f"Invalid configuration: {e}")

    typer.echo(f"Indexing {pdf_file}...")
    try:
        index = build_index_from_pdf(pdf_file, config)
        index.save(output)
    except Exception as e:
        logger.exception("Indexing failed.")
        _fail_with_error(f"Indexing failed: {e}")

    typer.echo(f"Indexed {len(index)} chunks into {output}")


@app.command()
def ask(
    pdf_file: Annotated[
        Path,
        typer.Argument(
            exists=True, file_okay=True, dir_okay=False, readable=True,
            help=f"PDF to answer from (e.g. {DEFAULT_SAMPLE_PDF}).",
        ),
    ],
    question: Annotated[str, typer.Argument(help="The question to answer.")],
    index_path: Annotated[
        Optional[Path], typer.Option("--index", "-i", help="Reuse an index written by 'ingest'.")
    ] = None,
    k: Annotated[
        int, typer.Option("-k", help="Number of chunks to retrieve.")
    ] = DEFAULT_CONFIG.retrieval_k,
    model: Annotated[
        str, typer.Option("--model", "-m", help="Chat model used to answer.")
    ] = DEFAULT_CONFIG.chat_model,
) -> None:
    """
    Answer a question about a PDF.
    """
    try:
        config = PipelineConfig(retrieval_k=k, chat_model=model)
    except ValueError as e:
        _fail_with_error(f"Invalid configuration: {e}")

    if index_path is not None and not index_path.is_file():
        _fail_with_error(f"Index file not found: {index_path}")

    try:
        if index_path is not None:
            typer.echo(f"Loading index from {index_path}...")
            index = DocumentIndex.load(index_path, build_embeddings(config))
        else:
            typer.echo(f"Indexing {pdf_file}...")
            index = build_index_from_pdf(pdf_file, config)

        result = answer_question(index, question, config)
    except Exception as e:
        logger.exception("Question answering failed.")
        _fail_with_error(f"Question answering failed: {e}")

    typer.echo(result.answer)
    if result.sources:
        typer.echo("")
        typer.echo("Sources:")
        for ref in result.sources:
            page = f"p.{ref.page}" if ref.page is not None else "?"
            typer.echo(f"  - {ref.source} {page}")


if __name__ == "__main__":
    app()
