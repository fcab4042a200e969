from ragbook.loaders.pdf import PdfLoader

__all__ = ["PdfLoader"]
