#!/usr/bin/env python3
"""Helper script to check the .env file and the settings the API will start with."""

from pathlib import Path
import os
import sys

SECRET_VARIABLES = ("ZPE_SUPABASE_KEY", "ZPE_ADMIN_TOKEN")

TEMPLATE = """# Supabase (optional; seed files in ./data are used when unset)
# Get these from: https://supabase.com/dashboard -> Your Project -> Settings -> API
ZPE_SUPABASE_URL=https://your-project-id.supabase.co
ZPE_SUPABASE_KEY=your-service-role-key-here

# Shared cache tier (optional; in-process cache only when unset)
# ZPE_REDIS_URL=redis://localhost:6379/0

# API
ZPE_API_PREFIX=/api
ZPE_ADMIN_TOKEN=change-me
# ZPE_FRONTEND_ALLOWED_ORIGINS=http://localhost:3000,http://127.0.0.1:3000

# Zone resolution: shapely, postgis or none
ZPE_SPATIAL_ENGINE=shapely
"""


def _mask(value: str) -> str:
    if len(value) > 20:
        return value[:8] + "..." + value[-4:]
    return "***"


def _print_env_file(env_file: Path) -> None:
    print(f"Found .env file at: {env_file}")
    print("-" * 60)
    for line in env_file.read_text(encoding="utf-8").splitlines():
        name, sep, value = line.partition("=")
        if sep and name.strip() in SECRET_VARIABLES and value.strip():
            print(f"{name}={_mask(value.strip())}")
        else:
            print(line)
    print("-" * 60)
    print()


def main() -> int:
    project_root = Path(__file__).parent
    env_file = project_root / ".env"

    print("=" * 60)
    print("Zone Pricing Engine environment checker")
    print("=" * 60)
    print()

    if not env_file.exists():
        env_file.write_text(TEMPLATE, encoding="utf-8")
        print(f"Created template .env file at: {env_file}")
        print("Edit it and run this script again.")
        return 1
    _print_env_file(env_file)

    for name in ("ZPE_SUPABASE_URL", "ZPE_SUPABASE_KEY", "ZPE_REDIS_URL", "ZPE_ADMIN_TOKEN"):
        value = os.getenv(name)
        if value is None:
            print(f"  {name}: not set in process environment")
        else:
            shown = _mask(value) if name in SECRET_VARIABLES else value
            print(f"  {name}: {shown}")
    print()

    sys.path.insert(0, str(project_root / "src"))
    try:
        from zone_pricing.config import settings
    except Exception as e:
        print(f"Error loading config: {e}")
        print("Make sure you're running this from the project root directory")
        return 1

    print("Loaded settings:")
    print(f"  spatial engine:   {settings.spatial_engine}")
    print(f"  database:         {'configured' if settings.supabase_url and settings.supabase_key else 'seed files only'}")
    print(f"  redis:            {'configured' if settings.redis_url else 'in-process cache only'}")
    print(f"  admin cache clear: {'enabled' if settings.admin_token else 'disabled'}")
    missing = False
    for label, path in (
        ("zones", settings.zones_file),
        ("services", settings.services_file),
        ("pricing settings", settings.pricing_settings_file),
    ):
        status = "ok" if path.exists() else "MISSING"
        missing = missing or not path.exists()
        print(f"  {label} seed file: {path} [{status}]")
    print()

    if missing and not (settings.supabase_url and settings.supabase_key):
        print("Seed files are missing and no database is configured; pricing will use empty data.")
        return 1
    print("Configuration looks usable.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
