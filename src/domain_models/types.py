from typing import Any, TypeAlias

# Metadata is a flexible dictionary used to store arbitrary context.
# e.g., {"source": "docs/sample.pdf", "page": 0, "start_index": 1200}
Metadata: TypeAlias = dict[str, Any]

# Token ids produced by a tiktoken encoding.
TokenIds: TypeAlias = list[int]
