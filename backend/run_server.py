#!/usr/bin/env python3
"""
Standalone server script. Runs migrations, then starts uvicorn.
"""
import sys
import os
from pathlib import Path

# Add the backend directory to the Python path
backend_dir = Path(__file__).parent
sys.path.insert(0, str(backend_dir))
os.chdir(backend_dir)


def run_migrations():
    from alembic.config import Config
    from alembic import command
    alembic_ini = backend_dir / "alembic.ini"
    if not alembic_ini.exists():
        print("No alembic.ini found, skipping migrations.")
        return
    print("Running database migrations...")
    command.upgrade(Config(str(alembic_ini)), "head")
    print("Migrations complete.")


if __name__ == "__main__":
    import uvicorn
    from storefront.core.config import settings

    try:
        run_migrations()
    except Exception as e:
        print(f"ERROR: Migrations failed: {e}", file=sys.stderr)
        sys.exit(1)

    try:
        uvicorn.run(
            "storefront.main:app",
            host=settings.HOST,
            port=settings.PORT,
            log_level="info",
            access_log=True,
            reload=False,
        )
    except KeyboardInterrupt:
        print("\nServer stopped by user")
        sys.exit(0)
