#!/usr/bin/env python3
"""
Boapay Entry Point

Starts the FastAPI server with the online banking system.
"""

import sys

import uvicorn

from boapay.config import get_config


if __name__ == "__main__":
    config = get_config()
    print("🏦 Starting Boapay Online Banking...")
    print(f"💾 Storage: {config.database_url}")
    print("💰 All financial calculations use Decimal precision")
    print(f"🌐 API available at: http://localhost:{config.api_port}/api")
    print(f"📚 Documentation at: http://localhost:{config.api_port}/docs")
    print()

    try:
        uvicorn.run(
            "boapay.api:create_app",
            factory=True,
            host=config.api_host,
            port=config.api_port,
            log_level=config.log_level.lower()
        )
    except KeyboardInterrupt:
        print("\n👋 Shutting down Boapay...")
    except Exception as e:
        print(f"❌ Error starting server: {e}")
        sys.exit(1)
