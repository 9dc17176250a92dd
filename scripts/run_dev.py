#!/usr/bin/env python3
"""
Development server runner for the statquery API.

Loads .env, checks that the schema catalog parses, then starts uvicorn
with hot reloading and colored single-line logs.
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
    print("  Copy .env-template to .env and fill in DATABASE__DATABASE_URL and LLM__API_KEY")


if __name__ == "__main__":
    import os
    import uvicorn
    from statquery.config import get_settings
    from statquery.domain.errors import ConfigurationError
    from statquery.utils.yaml_loader import load_catalog

    # Readable logs for local runs unless explicitly overridden
    os.environ.setdefault("APP__JSON_LOGS", "false")

    settings = get_settings()
    server_config = settings.server

    try:
        catalog = load_catalog(settings.catalog, base_dir=project_root)
    except ConfigurationError as e:
        print(f"✗ Schema catalog could not be loaded: {e.message}")
        sys.exit(1)

    print("🚀 Starting statquery API development server...")
    print(f"📚 Catalog: {len(catalog.all_tables())} tables in {len(catalog.schemas)} schemas")
    print(f"🧭 Table gating: {'enabled' if settings.embedding.enabled else 'disabled (no EMBEDDING__API_KEY)'}")
    print(f"📊 API Documentation: http://{server_config.host}:{server_config.port}/docs")
    print(f"🔍 Health Check: http://{server_config.host}:{server_config.port}/health")
    print()

    uvicorn.run(
        server_config.app_module,
        host=server_config.host,
        port=server_config.port,
        reload=server_config.reload,
        reload_dirs=[str(src_path)],
        log_config=None,  # Use our structured logging
        access_log=False  # We handle access logging via middleware
    )
