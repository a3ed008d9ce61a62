"""Document source: raw text extraction from PDF, TXT, DOCX, and HTML files."""

import logging
from pathlib import Path

import chardet

logger = logging.getLogger(__name__)

# Supported file extensions mapped to format identifiers
SUPPORTED_FORMATS: dict[str, str] = {
    ".pdf": "pdf",
    ".txt": "txt",
    ".md": "txt",
    ".docx": "docx",
    ".html": "html",
    ".htm": "html",
}


class DocumentSource:
    """Supplies the raw extracted text of a scripture document.

    The rest of the pipeline treats the result as an opaque string; no
    structure is inferred here.
    """

    def read(self, file_path: str | Path) -> str:
        """Extract the raw text of a document.

        Args:
            file_path: Path to the document.

        Returns:
            The extracted text. Empty if a binary document could not be read.

        Raises:
            FileNotFoundError: If file_path does not exist.
            ValueError: If the file format is not supported.
        """
        path = Path(file_path)
        if not path.exists():
            raise FileNotFoundError(f"File not found: {path}")

        file_format = self.detect_format(path)

        dispatch = {
            "pdf": self._read_pdf,
            "txt": self._read_txt,
            "docx": self._read_docx,
            "html": self._read_html,
        }
        text = dispatch[file_format](path)
        logger.info("Extracted %d characters from %s (%s)", len(text), path, file_format)
        return text

    def detect_format(self, file_path: Path) -> str:
        """Determine file format from extension.

        Raises:
            ValueError: If extension is not supported.
        """
        ext = file_path.suffix.lower()
        if ext not in SUPPORTED_FORMATS:
            raise ValueError(
                f"Unsupported file format: '{ext}'. "
                f"Supported: {', '.join(SUPPORTED_FORMATS.keys())}"
            )
        return SUPPORTED_FORMATS[ext]

    def _read_pdf(self, file_path: Path) -> str:
        """Extract text from a PDF file using pymupdf (fitz), one page per block."""
        import fitz  # type: ignore[import-untyped]

        try:
            with fitz.open(str(file_path)) as doc:
                pages = []
                for page in doc:
                    text = page.get_text("text")
                    if text.strip():
                        pages.append(text)
                return "\n".join(pages)
        except Exception:
            logger.exception("Failed to read PDF: %s", file_path)
            return ""

    def _read_txt(self, file_path: Path) -> str:
        """Read a plain text file, detecting the encoding when it is not UTF-8.

        Legacy scripture transcriptions are often Windows-1252, whose
        accented letters stand in for Sanskrit diacritics.
        """
        try:
            return file_path.read_text(encoding="utf-8")
        except UnicodeDecodeError:
            pass

        raw_bytes = file_path.read_bytes()
        detected = chardet.detect(raw_bytes)
        encoding = detected.get("encoding") or "utf-8"
        confidence = detected.get("confidence", 0)

        if confidence < 0.7:
            logger.warning(
                "Low confidence encoding detection for %s: %s (%.0f%%)",
                file_path,
                encoding,
                confidence * 100,
            )

        try:
            return raw_bytes.decode(encoding)
        except (UnicodeDecodeError, LookupError):
            try:
                return raw_bytes.decode("windows-1252")
            except UnicodeDecodeError:
                logger.error("Failed to decode file: %s", file_path)
                return raw_bytes.decode("utf-8", errors="replace")

    def _read_docx(self, file_path: Path) -> str:
        """Extract paragraphs from a DOCX file, separated by blank lines."""
        import docx

        try:
            doc = docx.Document(str(file_path))
            paragraphs = [para.text for para in doc.paragraphs if para.text.strip()]
            return "\n\n".join(paragraphs)
        except Exception:
            logger.exception("Failed to read DOCX: %s", file_path)
            return ""

    def _read_html(self, file_path: Path) -> str:
        """Extract visible text from an HTML file using BeautifulSoup."""
        from bs4 import BeautifulSoup

        try:
            raw = self._read_txt(file_path)
            soup = BeautifulSoup(raw, "lxml")

            for tag in soup(["script", "style"]):
                tag.decompose()

            return soup.get_text(separator="\n")
        except Exception:
            logger.exception("Failed to read HTML: %s", file_path)
            return ""
