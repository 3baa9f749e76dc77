"""
Maintenance commands.

    python manage.py schema            print the DDL to run in the SQL editor
    python manage.py verify-schema     check every table is reachable
    python manage.py seed              create a demo hospital with staff
    python manage.py generate-code     issue an access code for a hospital
"""
import argparse
import asyncio
import logging
import sys
from datetime import datetime

from dotenv import load_dotenv

load_dotenv()

from services.maintenance_service import read_schema, check_tables, seed_demo_data  # noqa: E402
from services.access_code_service import AccessCodeService  # noqa: E402

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def cmd_schema(args) -> int:
    print(read_schema())
    return 0


def cmd_verify_schema(args) -> int:
    report = check_tables()
    for table, state in report["tables"].items():
        print(f"{'✅' if state == 'ok' else '❌'} {table}: {state}")
    print("Schema OK" if report["healthy"] else "Schema incomplete, run: python manage.py schema")
    return 0 if report["healthy"] else 1


def cmd_seed(args) -> int:
    result = asyncio.run(seed_demo_data(args.admin_email, args.admin_password))
    print(f"Seeded hospital {result['hospital']['id']} ({result['hospital']['name']})")
    print(f"Staff created: {len(result['staff_ids'])}")
    print(f"Manager code: {result['codes']['manager']}")
    print(f"Staff code:   {result['codes']['staff']}")
    return 0


def cmd_generate_code(args) -> int:
    expires_at = datetime.fromisoformat(args.expires_at) if args.expires_at else None
    code = asyncio.run(AccessCodeService().generate_access_code(
        hospital_id=args.hospital_id,
        role=args.role,
        staff_id=args.staff_id,
        expires_at=expires_at
    ))
    print(code)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Hospital rota maintenance")
    commands = parser.add_subparsers(dest="command", required=True)

    commands.add_parser("schema", help="Print the database schema").set_defaults(func=cmd_schema)
    commands.add_parser("verify-schema", help="Check that every table exists").set_defaults(func=cmd_verify_schema)

    seed = commands.add_parser("seed", help="Create demo data")
    seed.add_argument("--admin-email", default="admin@spital.ro")
    seed.add_argument("--admin-password", required=True)
    seed.set_defaults(func=cmd_seed)

    code = commands.add_parser("generate-code", help="Issue an access code")
    code.add_argument("--hospital-id", type=int, required=True)
    code.add_argument("--role", choices=["staff", "manager"], default="staff")
    code.add_argument("--staff-id", type=int, default=None)
    code.add_argument("--expires-at", default=None, help="ISO timestamp")
    code.set_defaults(func=cmd_generate_code)

    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
