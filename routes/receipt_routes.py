from flask import Blueprint, request, jsonify, current_app
import logging

from services.receipt_service import ReceiptService
from utils.receipt_uploader import ReceiptUploader, UnsupportedFileError, FileTooLargeError

logger = logging.getLogger(__name__)
receipt_bp = Blueprint('receipts', __name__)


def get_receipt_service() -> ReceiptService:
    """Get the receipt service from the Flask app config."""
    receipt_service = current_app.config.get('receipt_service')
    if receipt_service is None:
        raise RuntimeError("Receipt service not configured on the application")
    return receipt_service


def get_uploader() -> ReceiptUploader:
    """Get the upload helper from the Flask app config."""
    uploader = current_app.config.get('receipt_uploader')
    if uploader is None:
        uploader = ReceiptUploader(
            current_app.config['UPLOAD_FOLDER'],
            max_size=current_app.config['MAX_CONTENT_LENGTH']
        )
        current_app.config['receipt_uploader'] = uploader
    return uploader


@receipt_bp.route('/api/receipts', methods=['POST'])
def upload_receipt():
    """Accept a receipt upload and run it through the pipeline."""
    if 'file' not in request.files:
        return jsonify({'success': False, 'error': 'No file provided'}), 400

    upload = request.files['file']
    uploader = get_uploader()

    try:
        temp_path = uploader.save_upload(upload)
    except FileTooLargeError as e:
        return jsonify({'success': False, 'error': str(e)}), 413
    except UnsupportedFileError as e:
        return jsonify({'success': False, 'error': str(e)}), 400

    try:
        result = get_receipt_service().process_receipt(temp_path, filename=upload.filename)
    except FileTooLargeError as e:
        return jsonify({'success': False, 'error': str(e)}), 413
    except UnsupportedFileError as e:
        return jsonify({'success': False, 'error': str(e)}), 400
    finally:
        # The service keeps its own durable copy
        uploader.discard(temp_path)

    status = 201 if result.success else 422
    return jsonify(result.to_dict()), status


@receipt_bp.route('/api/receipts/<job_id>', methods=['GET'])
def get_receipt(job_id):
    """Get a receipt job and its extracted data."""
    job = get_receipt_service().get_receipt(job_id)
    if job is None:
        return jsonify({'success': False, 'error': 'Receipt not found'}), 404
    return jsonify({'success': True, 'receipt': job.to_dict()})


@receipt_bp.route('/api/receipts/<job_id>/reprocess', methods=['POST'])
def reprocess_receipt(job_id):
    """Run the pipeline again on a stored receipt."""
    result = get_receipt_service().reprocess_receipt(job_id)
    if result is None:
        return jsonify({'success': False, 'error': 'Receipt not found'}), 404
    status = 201 if result.success else 422
    return jsonify(result.to_dict()), status


@receipt_bp.route('/api/health', methods=['GET'])
def health():
    """Report which extraction strategy a new job would use."""
    service = get_receipt_service()
    strategy = service.field_engine.select_strategy()
    return jsonify({'status': 'ok', 'extraction_strategy': strategy.value})
