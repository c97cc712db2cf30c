"""Flask application exposing the receipt pipeline over HTTP."""

import logging
import os
from typing import Optional

from flask import Flask, jsonify
from dotenv import load_dotenv

from config.pipeline_config import PipelineConfig
from config.llm_config import LLMConfig
from routes.receipt_routes import receipt_bp
from services.receipt_service import ReceiptService
from utils.logging_config import setup_logging

logger = logging.getLogger(__name__)


def create_app(config: Optional[PipelineConfig] = None,
               receipt_service: Optional[ReceiptService] = None,
               llm_config: Optional[LLMConfig] = None) -> Flask:
    """
    Create the Flask application.

    Args:
        config: Pipeline configuration, read from the environment if omitted
        receipt_service: Pre-built service, built from config if omitted
        llm_config: Language model configuration used when building the service

    Returns:
        Configured Flask app
    """
    config = config or PipelineConfig()
    config.validate()

    app = Flask(__name__)
    app.config['MAX_CONTENT_LENGTH'] = config.max_upload_size
    app.config['UPLOAD_FOLDER'] = config.upload_dir
    app.config['receipt_service'] = receipt_service or ReceiptService.from_config(config, llm_config)
    os.makedirs(config.upload_dir, exist_ok=True)

    app.register_blueprint(receipt_bp)

    @app.errorhandler(413)
    def file_too_large(error):
        return jsonify({'success': False, 'error': 'File exceeds the upload size limit'}), 413

    logger.info(f"Receipt API ready (data directory: {config.data_dir})")
    return app


if __name__ == '__main__':
    load_dotenv()
    pipeline_config = PipelineConfig()
    setup_logging(
        log_dir=pipeline_config.log_dir,
        debug_mode=os.getenv('FLASK_DEBUG', '0') == '1',
        log_to_file=True
    )
    create_app(pipeline_config).run(debug=os.getenv('FLASK_DEBUG', '0') == '1')
