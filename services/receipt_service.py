"""
Receipt processing pipeline: file in, validated fields and an expense out.
"""

import os
import logging
import threading
from dataclasses import dataclass
from typing import Optional, Dict, Any, Tuple, Union
from uuid import UUID

from config.llm_config import LLMConfig
from config.pipeline_config import PipelineConfig
from models.expense import Expense
from models.extracted_fields import ExtractedFields
from models.receipt import ReceiptJob
from ocr import create_ocr_engine
from ocr.base_ocr import OCRError
from services.category_resolver import CategoryResolver
from services.expense_materializer import ExpenseMaterializer
from services.extraction_validator import ExtractionValidator
from services.field_extractor import FieldExtractionEngine
from services.heuristic_extractor import HeuristicExtractor
from services.llm_client import OllamaClient
from services.llm_extractor import DelegatedExtractor
from services.pdf_resolver import PDFResolver, PDFExtractionError
from services.text_recognizer import TextRecognizer
from storage.base import StorageBase, StorageError
from storage.json_storage import JSONStorage
from storage.storage_manager import StorageManager
from utils.image_preprocessor import ImagePreprocessor, ImagePreprocessingError
from utils.logging_config import get_job_logger, log_with_context
from utils.receipt_uploader import MAX_UPLOAD_SIZE, is_pdf, validate_receipt_file

logger = logging.getLogger(__name__)

JOB_FAILURES = (OCRError, ImagePreprocessingError, PDFExtractionError, StorageError)


class ProcessingCancelled(Exception):
    """Raised between stages when the caller cancelled the job."""


@dataclass
class ReceiptProcessingResult:
    """Outcome of one pipeline run."""
    success: bool
    job: ReceiptJob
    extracted: Optional[ExtractedFields] = None
    expense: Optional[Expense] = None
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'success': self.success,
            'receipt': self.job.to_dict(),
            'extracted': self.extracted.model_dump(mode='json') if self.extracted else None,
            'expense': self.expense.to_dict() if self.expense else None,
            'error': self.error
        }


class ReceiptService:
    """
    Service for turning receipt images and PDFs into expenses.
    """

    def __init__(self,
                 storage: StorageBase,
                 file_store: StorageManager,
                 text_recognizer: TextRecognizer,
                 pdf_resolver: PDFResolver,
                 field_engine: Optional[FieldExtractionEngine] = None,
                 validator: Optional[ExtractionValidator] = None,
                 materializer: Optional[ExpenseMaterializer] = None,
                 max_file_size: int = MAX_UPLOAD_SIZE,
                 save_raw_text: bool = False):
        """
        Initialize the receipt service.

        Args:
            storage: Record storage for jobs, expenses and categories
            file_store: Durable storage for source files and artifacts
            text_recognizer: Image preprocessing and OCR
            pdf_resolver: PDF text extraction
            field_engine: Field extraction with strategy selection
            validator: Field validation and confidence scoring
            materializer: Expense creation
            max_file_size: Largest accepted file in bytes
            save_raw_text: Write recognized text to the debug directory
        """
        self.storage = storage
        self.file_store = file_store
        self.text_recognizer = text_recognizer
        self.pdf_resolver = pdf_resolver
        self.field_engine = field_engine or FieldExtractionEngine()
        self.validator = validator or ExtractionValidator()
        self.materializer = materializer or ExpenseMaterializer(storage)
        self.max_file_size = max_file_size
        self.save_raw_text = save_raw_text

    @classmethod
    def from_config(cls,
                    config: Optional[PipelineConfig] = None,
                    llm_config: Optional[LLMConfig] = None,
                    storage: Optional[StorageBase] = None) -> 'ReceiptService':
        """
        Build a service with the default collaborators.

        Raises:
            OCRError: If Tesseract is not available
        """
        config = config or PipelineConfig()
        llm_config = llm_config or LLMConfig()

        storage = storage or JSONStorage(config.data_dir)
        file_store = StorageManager(config.data_dir)
        preprocessor = ImagePreprocessor(
            debug_mode=config.debug_output,
            debug_output_dir=str(file_store.debug_dir)
        )
        ocr_engine = create_ocr_engine(
            tesseract_cmd=config.tesseract_cmd,
            language=config.ocr_language,
            timeout=config.ocr_timeout
        )
        logger.info(f"OCR engine ready: {ocr_engine.get_debug_info()}")
        text_recognizer = TextRecognizer(ocr_engine, preprocessor)
        pdf_resolver = PDFResolver(
            text_recognizer,
            file_store,
            max_pages=config.pdf_max_pages,
            dpi=config.pdf_dpi,
            min_text_length=config.pdf_min_text_length
        )

        delegated = None
        if llm_config.is_configured:
            delegated = DelegatedExtractor(OllamaClient(llm_config), llm_config.max_prompt_chars)
        else:
            logger.info("Language model extraction disabled")

        category_resolver = CategoryResolver(storage)
        return cls(
            storage=storage,
            file_store=file_store,
            text_recognizer=text_recognizer,
            pdf_resolver=pdf_resolver,
            field_engine=FieldExtractionEngine(HeuristicExtractor(), delegated),
            validator=ExtractionValidator(),
            materializer=ExpenseMaterializer(storage, category_resolver),
            max_file_size=config.max_upload_size,
            save_raw_text=config.debug_output
        )

    def process_receipt(self,
                        file_path: str,
                        cancel_event: Optional[threading.Event] = None,
                        filename: Optional[str] = None) -> ReceiptProcessingResult:
        """
        Process a receipt file.

        The file is validated, copied into durable storage and recorded as a
        pending job before any processing starts, so the caller may delete
        its copy once this returns.

        Args:
            file_path: Path to a png, jpg, jpeg, gif, bmp or pdf file
            cancel_event: Checked between stages; when set the job fails as cancelled
            filename: Original file name, when file_path is a temporary upload

        Returns:
            ReceiptProcessingResult with the final job state

        Raises:
            FileNotFoundError: If the file does not exist
            UnsupportedFileError: If the file type is not accepted
            FileTooLargeError: If the file is over the size limit
        """
        validate_receipt_file(file_path, self.max_file_size)

        job = ReceiptJob(filename=filename or os.path.basename(file_path))
        job_logger = get_job_logger(__name__, job.id)
        log_with_context(job_logger, logging.INFO, "Receipt accepted", {'filename': job.filename})

        try:
            job.source_path = self.file_store.store_source(job.id, file_path, job.filename)
            self.storage.save_receipt_job(job)
        except StorageError as e:
            return self._fail(job, e, job_logger)

        return self._run(job, cancel_event)

    def reprocess_receipt(self, job_id: Union[str, UUID],
                          cancel_event: Optional[threading.Event] = None) -> Optional[ReceiptProcessingResult]:
        """
        Run the pipeline again on the stored source of an earlier job.

        A new job is created; no deduplication against earlier expenses is done.

        Returns:
            ReceiptProcessingResult, or None if the job does not exist
        """
        previous = self.get_receipt(job_id)
        if previous is None:
            return None
        logger.info(f"Reprocessing receipt {previous.id}")
        return self.process_receipt(previous.source_path, cancel_event, filename=previous.filename)

    def get_receipt(self, job_id: Union[str, UUID]) -> Optional[ReceiptJob]:
        """Load a receipt job by id; malformed ids are treated as unknown."""
        if not isinstance(job_id, UUID):
            try:
                job_id = UUID(str(job_id))
            except ValueError:
                return None
        return self.storage.get_receipt_job(job_id)

    def _run(self, job: ReceiptJob, cancel_event: Optional[threading.Event]) -> ReceiptProcessingResult:
        job_logger = get_job_logger(__name__, job.id)
        try:
            self._check_cancelled(cancel_event, 'start')
            job.start_processing()
            self.storage.save_receipt_job(job)

            self._check_cancelled(cancel_event, 'text recognition')
            text, processed_path = self._resolve_text(job, job_logger)
            if self.save_raw_text:
                self.file_store.save_raw_text(job.id, text)

            self._check_cancelled(cancel_event, 'field extraction')
            strategy = self.field_engine.select_strategy()
            raw_fields = self.field_engine.extract(text, strategy)
            fields = self.validator.normalize(raw_fields)
            log_with_context(job_logger, logging.INFO, "Fields extracted", {
                'strategy': strategy.value,
                'method': fields.method.value if fields.method else None,
                'fields_found': fields.field_count(),
                'items': len(fields.items),
                'confidence': fields.confidence
            })

            self._check_cancelled(cancel_event, 'expense creation')
            materialization = self.materializer.materialize(fields, job.id)
            if not materialization.created:
                job_logger.info(f"Expense skipped: {materialization.skipped_reason}")

            # The job only counts as completed once the completed record is stored
            completed = job.model_copy(deep=True)
            completed.complete(
                raw_text=text,
                extracted_data=fields,
                processed_image_path=processed_path,
                expense_id=materialization.expense.id if materialization.created else None
            )
            self.storage.save_receipt_job(completed)
            job_logger.info(f"Receipt completed with confidence {fields.confidence:.2f}")
            return ReceiptProcessingResult(
                success=True,
                job=completed,
                extracted=fields,
                expense=materialization.expense
            )

        except JOB_FAILURES + (ProcessingCancelled,) as e:
            return self._fail(job, e, job_logger)
        except Exception as e:
            job_logger.exception(f"Unexpected error while processing receipt: {str(e)}")
            return self._fail(job, e, job_logger)

    def _resolve_text(self, job: ReceiptJob, job_logger) -> Tuple[str, str]:
        if is_pdf(job.source_path):
            resolution = self.pdf_resolver.resolve(job.source_path)
            job_logger.info(
                f"PDF text from {resolution.source} ({resolution.pages_processed} pages, {len(resolution.text)} chars)"
            )
            return resolution.text, resolution.representative_image_path

        result = self.text_recognizer.recognize(
            job.source_path, self.file_store.processed_path_for(job.source_path)
        )
        log_with_context(job_logger, logging.INFO, "Image text recognized", {
            'chars': len(result.text),
            'ocr_confidence': result.confidence,
            'quality_score': result.quality.score,
            'quality_issues': result.quality.issues,
            'retried': result.retried
        })
        return result.text, result.processed_image_path

    @staticmethod
    def _check_cancelled(cancel_event: Optional[threading.Event], stage: str) -> None:
        if cancel_event is not None and cancel_event.is_set():
            raise ProcessingCancelled(f"Processing cancelled before {stage}")

    def _fail(self, job: ReceiptJob, error: Exception, job_logger) -> ReceiptProcessingResult:
        message = str(error) or error.__class__.__name__
        job_logger.error(f"Receipt processing failed: {message}")
        job.fail(message)
        try:
            self.storage.save_receipt_job(job)
        except StorageError as e:
            job_logger.error(f"Could not record failed status: {str(e)}")
        return ReceiptProcessingResult(success=False, job=job, error=message)
