#!/usr/bin/env python3
"""
ZentriBank Entry Point

Starts the FastAPI server with the configured storage backend.
"""

import sys
from pathlib import Path

# Add the project root to Python path
project_root = Path(__file__).parent
sys.path.insert(0, str(project_root))

from zentri_bank.config import get_config
from zentri_bank.logging_config import setup_logging
from zentri_bank.api import run_server


if __name__ == "__main__":
    config = get_config()
    setup_logging(config.log_level, log_format=config.log_format, log_file=config.log_file)

    print("🏦 Starting ZentriBank...")
    print(f"💾 Storage: {'SQLite ' + config.database_path if config.use_sqlite else 'in-memory'}")
    print(f"📧 Mail delivery: {'SMTP ' + config.smtp_host if config.mail_enabled else 'log only'}")
    print("💰 All balances use Decimal precision")
    print(f"🌐 API available at: http://localhost:{config.api_port}")
    print(f"📚 Documentation at: http://localhost:{config.api_port}/docs")
    print()

    try:
        run_server(
            host=config.api_host,
            port=config.api_port,
            debug=False
        )
    except KeyboardInterrupt:
        print("\n👋 Shutting down ZentriBank...")
    except Exception as e:
        print(f"❌ Error starting server: {e}")
        sys.exit(1)
