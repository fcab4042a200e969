"""
Prompt templates used in the ragbook system.
"""

# Output repair: the completion did not satisfy the format instructions.
FIX_TEMPLATE = """Instructions:
--------------
{instructions}
--------------
Completion:
--------------
{completion}
--------------

Above, the Completion did not satisfy the constraints given in the Instructions.
Error:
--------------
{error}
--------------

Please try again. Respond ONLY with an answer that satisfies the constraints laid out in the Instructions:"""

# Output repair that also replays the prompt which produced the completion.
RETRY_WITH_ERROR_TEMPLATE = """Prompt:
{prompt}
Completion:
{completion}

Above, the Completion did not satisfy the constraints given in the Prompt.
Details: {error}
Please try again:"""

# Retrieval QA ("stuff" all retrieved passages into one prompt)
QA_SYSTEM_TEMPLATE = """You are an assistant for question-answering tasks.
Use the following pieces of retrieved context to answer the question.
Each passage is numbered and labelled with its source page.
If you don't know the answer, say that you don't know.
Use three sentences maximum and keep the answer concise.

Context:
{context}"""

QA_HUMAN_TEMPLATE = "{question}"
