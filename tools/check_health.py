from dotenv import load_dotenv
load_dotenv()

import sys

from supabase import create_client

from eprosys.config import get_settings
from eprosys.db import SupabaseGateway, check_tables
from eprosys.errors import ConfigError
from eprosys.tables import TABLES


def main():
    try:
        url, key = get_settings().require_supabase()
    except ConfigError as e:
        print(f"[ERRO] {e}")
        sys.exit(1)

    gateway = SupabaseGateway(create_client(url, key))
    results = check_tables(gateway, TABLES)

    for r in results:
        if r.status == "ok":
            print(f"[OK]   {r.name:<12} {r.count:>8,} registros")
        else:
            print(f"[ERRO] {r.name:<12} {r.error}")

    if any(r.status != "ok" for r in results):
        sys.exit(1)


if __name__ == "__main__":
    main()
