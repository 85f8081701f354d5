"""
app/services/pdf_service.py

Converts a rendered HTML report into an A4 PDF with weasyprint.

weasyprint needs native Pango/Cairo libraries; it is imported lazily so the
rest of the service starts without them and a missing install only costs the
PDF artifact.
"""

from __future__ import annotations

import logging

from app.services.errors import PdfRenderError

logger = logging.getLogger(__name__)


def _css_string(value: str) -> str:
    return '"' + value.replace("\\", "\\\\").replace('"', '\\"') + '"'


def page_css(title: str, generated_on: str) -> str:
    """
    ``@page`` rule with the report title in the running header and the
    generation date plus ``Page X of Y`` in the footer.
    """

    return f"""
@page {{
  size: A4;
  margin: 20mm 15mm 22mm 15mm;
  @top-center {{
    content: {_css_string(title)};
    font-size: 9pt;
    color: #6B7280;
  }}
  @bottom-left {{
    content: {_css_string("Generated on " + generated_on)};
    font-size: 8pt;
    color: #6B7280;
  }}
  @bottom-right {{
    content: "Page " counter(page) " of " counter(pages);
    font-size: 8pt;
    color: #6B7280;
  }}
}}
"""


class PdfRenderer:
    def __init__(self, enabled: bool = True) -> None:
        self.enabled = enabled

    def render(self, html: str, *, title: str, generated_on: str) -> bytes:
        """
        Return PDF bytes for ``html``; raises :class:`PdfRenderError` on any failure.
        """

        if not self.enabled:
            raise PdfRenderError("PDF rendering is disabled")

        try:
            from weasyprint import CSS, HTML
        except (ImportError, OSError) as exc:
            raise PdfRenderError(f"weasyprint is not available: {exc}") from exc

        try:
            pdf = HTML(string=html).write_pdf(stylesheets=[CSS(string=page_css(title, generated_on))])
        except Exception as exc:  # noqa: BLE001
            raise PdfRenderError(f"PDF rendering failed: {exc}") from exc

        if not pdf:
            raise PdfRenderError("PDF rendering produced no output")
        logger.debug("Rendered PDF bytes=%d", len(pdf))
        return pdf
