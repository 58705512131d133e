import asyncio
import logging
from io import BytesIO
from typing import Dict, Any, List, Optional

import pdfplumber

from app.core.config import settings
from app.core.exceptions import UnsupportedFormat, EmptyDocument, ValidationError

logger = logging.getLogger(__name__)

PDF_CONTENT_TYPE = "application/pdf"
PDF_MAGIC = b"%PDF"


class DocumentService:
    """업로드된 이력서(PDF)에서 텍스트 추출"""

    def __init__(self, max_size: Optional[int] = None):
        self.max_size = max_size or settings.max_document_size

    async def extract(self, data: bytes, content_type: Optional[str], filename: str = "") -> Dict[str, Any]:
        """PDF → {"text", "page_count"}. 이벤트 루프를 막지 않도록 스레드에서 파싱"""
        logger.info(f"📄 문서 추출 시작: {filename} ({content_type}, {len(data)} bytes)")

        if content_type != PDF_CONTENT_TYPE or not data.startswith(PDF_MAGIC):
            logger.warning(f"⚠️ 지원하지 않는 문서 형식: {filename} ({content_type})")
            raise UnsupportedFormat()
        if len(data) > self.max_size:
            raise ValidationError(f"파일 크기가 {self.max_size // (1024 * 1024)}MB를 초과합니다")

        text, page_count = await asyncio.to_thread(self._extract_pdf_sync, data)
        if not text.strip():
            logger.warning(f"⚠️ 텍스트 없는 문서: {filename} ({page_count} 페이지)")
            raise EmptyDocument()

        logger.info(f"✅ 문서 추출 완료: {page_count} 페이지, {len(text)} 문자")
        return {"text": text, "page_count": page_count}

    @staticmethod
    def _extract_pdf_sync(data: bytes):
        chunks: List[str] = []
        try:
            with pdfplumber.open(BytesIO(data)) as pdf:
                page_count = len(pdf.pages)
                for page in pdf.pages:
                    page_text = page.extract_text() or ""
                    if page_text.strip():
                        chunks.append(page_text.strip())
        except Exception as e:
            logger.error(f"❌ PDF 파싱 실패: {str(e)}")
            raise UnsupportedFormat("PDF 파일을 읽을 수 없습니다") from e
        return "\n\n".join(chunks), page_count
