import argparse
import getpass
import sys
from pathlib import Path

sys.path.append(str(Path(__file__).resolve().parents[1]))

from fastapi import HTTPException

from ghosty import repo
from ghosty.auth.security import hash_password
from ghosty.http_helpers import password_problem, validate_username


def main() -> None:
    parser = argparse.ArgumentParser(description="Create or promote a Ghosty admin account")
    parser.add_argument("username", type=str)
    parser.add_argument("--email", type=str, default="")
    parser.add_argument("--password", type=str, default="", help="Prompted for when omitted")
    args = parser.parse_args()

    try:
        username = validate_username(args.username)
    except HTTPException as exc:
        parser.error(str(exc.detail))
    password = args.password or getpass.getpass("Admin password: ")
    problem = password_problem(password)
    if problem:
        parser.error(problem)

    row = repo.upsert_admin_user(username, hash_password(password), args.email.strip().lower() or None)
    print(f"admin ready: id={row['id']} username={row['username']}")


if __name__ == "__main__":
    main()
