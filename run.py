#!/usr/bin/env python3
"""
A simple script to run the receipt API server.
"""

import os
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

if __name__ == "__main__":
    from app import create_app
    from config.pipeline_config import PipelineConfig
    from utils.logging_config import setup_logging

    debug = os.getenv('FLASK_DEBUG', 'False').lower() == 'true'
    port = int(os.getenv('FLASK_PORT', '5000'))

    config = PipelineConfig()
    setup_logging(log_dir=config.log_dir, debug_mode=debug, log_to_file=True)
    app = create_app(config)

    print(f"Starting receipt API on http://localhost:{port}")
    print("Press Ctrl+C to stop the server")

    app.run(debug=debug, port=port, host='0.0.0.0')
