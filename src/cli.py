# src/cli.py
from __future__ import annotations

import os
import json
import argparse
import traceback

# ---------------------------
# Commands
# ---------------------------

def cmd_serve(port: int, host: str, debug: bool):
    from ledvelvet import create_app
    app = create_app()
    app.run(host=host, port=port, debug=debug)


def cmd_db_ping() -> None:
    from ledvelvet import create_app
    from ledvelvet.db.supabase import ping
    with create_app().app_context():
        ok = ping()
    print("supabase ping:", "ok" if ok else "failed")
    if not ok:
        raise SystemExit(2)


def cmd_door_events():
    # Same payload as GET /api/public/door-events
    from ledvelvet import create_app
    from ledvelvet.doorcheck.events import list_door_events
    with create_app().app_context():
        events = list_door_events()
    print(json.dumps({"ok": True, "events": events}, indent=2, default=str))


def cmd_door_key(action: str, label: str | None):
    if action == "gen":
        from ledvelvet.auth.door_keys import generate_key
        print(generate_key())
        return

    if action == "rotate":
        from ledvelvet import create_app
        from ledvelvet.auth.door_keys import rotate_key
        with create_app().app_context():
            active = rotate_key(label)
        print(json.dumps({"ok": True, "active": active}, indent=2))
        return

    raise SystemExit("unknown door-key action")


def cmd_qr(data: str, out: str):
    from ledvelvet.qr import render_png
    with open(out, "wb") as fh:
        fh.write(render_png(data))
    print(f"Wrote {out}")


# ---------------------------
# Parser / main
# ---------------------------

def main():
    p = argparse.ArgumentParser(description="LedVelvet backend CLI")
    sub = p.add_subparsers(dest="cmd", required=True)

    # serve
    sp = sub.add_parser("serve", help="Run Flask server")
    sp.add_argument("--port", type=int, default=int(os.getenv("PORT", "8080")))
    sp.add_argument("--host", default=os.getenv("HOST", "0.0.0.0"))
    sp.add_argument("--debug", action="store_true")
    sp.set_defaults(func=lambda a: cmd_serve(a.port, a.host, a.debug))

    # db
    sc = sub.add_parser("db", help="Database utilities")
    sc_sub = sc.add_subparsers(dest="dbcmd", required=True)
    scp = sc_sub.add_parser("ping", help="Ping Supabase")
    scp.set_defaults(func=lambda a: cmd_db_ping())

    # door events
    de = sub.add_parser("door-events", help="Print the door-check event list")
    de.set_defaults(func=lambda a: cmd_door_events())

    # door keys
    dk = sub.add_parser("door-key", help="Door API key helpers")
    dk_sub = dk.add_subparsers(dest="action", required=True)
    dk_sub.add_parser("gen", help="Print a fresh key (not stored)")
    rot = dk_sub.add_parser("rotate", help="Revoke active keys and store a new one")
    rot.add_argument("--label", default=None)
    dk.set_defaults(func=lambda a: cmd_door_key(a.action, getattr(a, "label", None)))

    # qr
    sq = sub.add_parser("qr", help="Render a QR PNG")
    sq.add_argument("data")
    sq.add_argument("--out", default="qr.png")
    sq.set_defaults(func=lambda a: cmd_qr(a.data, a.out))

    args = p.parse_args()
    try:
        return args.func(args)
    except Exception as e:
        # Surface trace on CLI errors
        print("ERROR:", e)
        traceback.print_exc()
        raise SystemExit(1)


if __name__ == "__main__":
    main()
