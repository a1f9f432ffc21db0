from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

from .auth_service import create_practitioner
from .client import LocalClient
from .config import configure_logging, read_config, write_config
from .db import Database
from .seed import seed_base


def cmd_init(args: argparse.Namespace, db: Database) -> None:
    seed_base(db)
    print(f"DB inizializzato e seed completato: {db.path}")


def cmd_db_path(args: argparse.Namespace, db: Database) -> None:
    print(db.path)


def cmd_set_db_dir(args: argparse.Namespace, db: Database) -> None:
    config = read_config()
    if args.directory:
        path = Path(args.directory)
        if not path.is_dir():
            raise SystemExit(f"La cartella non esiste: {args.directory}")
        config["database_dir"] = str(path.resolve())
    else:
        config.pop("database_dir", None)
    write_config(config)
    db.reset_path()
    print(f"Cartella database: {db.path.parent}")


def cmd_query(args: argparse.Namespace, db: Database) -> None:
    """
    Esegue un descriptor JSON (stessa forma di POST /api/db) e stampa il risultato:
    ambulatorio query '{"table": "patients", "limitCount": 5}'
    """
    raw = sys.stdin.read() if args.descriptor == "-" else args.descriptor
    try:
        descriptor = json.loads(raw)
        result = LocalClient(db).run(descriptor)
    except (ValueError, KeyError) as e:
        raise SystemExit(f"Descriptor non valido: {e}")
    print(json.dumps(result.to_dict(), indent=2, ensure_ascii=False, default=str))
    if result.error:
        raise SystemExit(1)


def cmd_create_practitioner(args: argparse.Namespace, db: Database) -> None:
    try:
        user_id = create_practitioner(
            db, args.first_name, args.last_name, args.email,
            practice_name=args.practice_name, password=args.password,
        )
    except ValueError as e:
        raise SystemExit(str(e))
    seed_base(db)
    print(f"Professionista creato: {user_id}")


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="ambulatorio", description="CLI Ambulatorio (database locale)")
    p.add_argument("--db", default=None, help="File SQLite da usare al posto di quello configurato")
    sub = p.add_subparsers(required=True)

    p_init = sub.add_parser("init", help="Crea DB, applica migrazioni e carica seed")
    p_init.set_defaults(func=cmd_init)

    p_path = sub.add_parser("db-path", help="Mostra il percorso del database")
    p_path.set_defaults(func=cmd_db_path)

    p_dir = sub.add_parser("set-db-dir", help="Sposta il database in un'altra cartella")
    p_dir.add_argument("directory", nargs="?", default=None, help="Cartella esistente (omessa = default)")
    p_dir.set_defaults(func=cmd_set_db_dir)

    p_query = sub.add_parser("query", help="Esegue un descriptor JSON")
    p_query.add_argument("descriptor", help="JSON del descriptor, oppure - per leggerlo da stdin")
    p_query.set_defaults(func=cmd_query)

    p_prat = sub.add_parser("create-practitioner", help="Crea un profilo professionista")
    p_prat.add_argument("--first-name", required=True)
    p_prat.add_argument("--last-name", required=True)
    p_prat.add_argument("--email", required=True)
    p_prat.add_argument("--practice-name", default=None)
    p_prat.add_argument("--password", default=None)
    p_prat.set_defaults(func=cmd_create_practitioner)

    return p


def main(argv: list[str] | None = None) -> None:
    configure_logging()
    parser = build_parser()
    args = parser.parse_args(argv)
    db = Database(args.db)
    try:
        args.func(args, db)
    finally:
        db.close()


if __name__ == "__main__":
    main()
