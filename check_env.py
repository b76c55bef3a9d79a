#!/usr/bin/env python3
"""Helper script to check the carrier gateway .env file and create a template if missing."""

from pathlib import Path
import os
import sys

TEMPLATE = """# Supabase Configuration (stores per-shop carrier API keys in the api_data table)
# Get these from: https://supabase.com/dashboard -> Your Project -> Settings -> API
CGW_SUPABASE_URL=https://your-project-id.supabase.co
CGW_SUPABASE_KEY=your-service-role-key-here

# API Configuration
CGW_API_PREFIX=/api
# CGW_FRONTEND_ALLOWED_ORIGINS accepts a JSON array or a comma-separated list

# Carrier
CGW_CARRIER_BASE_URL=https://stage.pratkabg.com
CGW_CARRIER_SERVICE_NAME=Carrier Shipping
CGW_TARGET_COUNTRIES=IT
CGW_SETTLEMENT_CURRENCY=EUR
"""

SECRET_VARIABLES = ("CGW_SUPABASE_KEY",)


def _mask(line: str) -> str:
    name, _, value = line.partition("=")
    value = value.strip()
    if name.strip() in SECRET_VARIABLES and len(value) > 8:
        return f"{name}={value[:4]}...{value[-4:]}"
    return line


def main():
    project_root = Path(__file__).parent
    env_file = project_root / ".env"

    print("=" * 60)
    print("Carrier Gateway Environment Checker")
    print("=" * 60)
    print()

    if not env_file.exists():
        print(f"❌ .env file NOT found at: {env_file}")
        env_file.write_text(TEMPLATE, encoding="utf-8")
        print(f"✅ Created template .env file at: {env_file}")
        print("⚠️  Please edit .env and add your Supabase credentials!")
        return

    print(f"✅ Found .env file at: {env_file}")
    print("-" * 60)
    for line in env_file.read_text(encoding="utf-8").splitlines():
        print(_mask(line))
    print("-" * 60)
    print()

    for name in ("CGW_SUPABASE_URL", "CGW_SUPABASE_KEY", "CGW_CARRIER_BASE_URL"):
        status = "✅ set in environment" if os.getenv(name) else "ℹ️  not in environment (using .env or default)"
        print(f"{name}: {status}")
    print()

    try:
        sys.path.insert(0, str(project_root / "src"))
        from carrier_gateway.config import settings
    except Exception as e:
        print(f"❌ Error loading config: {e}")
        return

    print(f"Carrier base URL: {settings.carrier_base_url}")
    print(f"Carrier service name: {settings.carrier_service_name}")
    print(f"Target countries: {', '.join(settings.target_countries) or '(none - no rates will be offered)'}")
    if settings.supabase_url and settings.supabase_key:
        print("✅ SUCCESS: Supabase is configured; credentials are persisted.")
    else:
        print("❌ Supabase is NOT configured; credentials are kept in memory only.")


if __name__ == "__main__":
    main()
