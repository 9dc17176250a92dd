#!/usr/bin/env python3
"""
Production server runner for the statquery API.

Starts uvicorn with several workers, no reload and JSON logs. Each worker
holds its own connection pool and table embedding cache, so size
DATABASE__CONNECTION_POOL_MAX_SIZE per worker.
"""

import sys
from pathlib import Path

# Add the src directory to the Python path
project_root = Path(__file__).parent.parent
src_path = project_root / "src"
sys.path.insert(0, str(src_path))

# Load environment variables
from dotenv import load_dotenv

env_file = project_root / ".env"
if env_file.exists():
    load_dotenv(env_file)
    print(f"✓ Loaded environment variables from {env_file}")
else:
    print(f"⚠ No .env file found at {env_file}")
    print("  Ensure environment variables are set via your deployment system")


if __name__ == "__main__":
    import uvicorn
    from statquery.config import get_settings

    settings = get_settings()
    server_config = settings.server

    workers = max(server_config.workers, 2)

    print("🚀 Starting statquery API production server...")
    print(f"🌐 Listening: {server_config.host}:{server_config.port}")
    print(f"👥 Workers: {workers} (pool max {settings.database.connection_pool_max_size} each)")
    print(f"🔁 SQL attempts per question: {settings.nl2sql.max_attempts}")
    print()

    uvicorn.run(
        server_config.app_module,
        host=server_config.host,
        port=server_config.port,
        workers=workers,
        reload=False,
        log_config=None,  # Use our structured logging
        access_log=False,  # We handle access logging via middleware
        server_header=False,
        date_header=False,
    )
