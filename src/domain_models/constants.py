ALLOWED_EMBEDDING_MODELS = {
    "all-MiniLM-L6-v2",
    "all-mpnet-base-v2",
    "intfloat/multilingual-e5-large",
    "text-embedding-3-small",  # OpenAI
    "text-embedding-3-large",  # OpenAI
}

OPENAI_EMBEDDING_PREFIX = "text-embedding-"

ALLOWED_CHAT_MODELS = {
    "gpt-3.5-turbo",
    "gpt-4o",
    "gpt-4o-mini",
    "gpt-4.1-mini",
}

ALLOWED_TOKENIZER_MODELS = {
    "cl100k_base",
    "o200k_base",
    "p50k_base",
    "r50k_base",
    "gpt2",
}

DEFAULT_EMBEDDING = "all-MiniLM-L6-v2"
DEFAULT_CHAT_MODEL = "gpt-4o-mini"
DEFAULT_TOKENIZER = "cl100k_base"

DEFAULT_SAMPLE_PDF = "docs/sample.pdf"

MAX_FILE_SIZE_BYTES = 50 * 1024 * 1024
SNIPPET_LENGTH = 200

NO_CONTEXT_ANSWER = "I could not find any relevant passages in the indexed documents."
