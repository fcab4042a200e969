from ragbook.parsers.output_fixer import OutputFixingParser, RetryWithErrorParser

__all__ = ["OutputFixingParser", "RetryWithErrorParser"]
