# drive_auth/implicit/__main__.py
import asyncio
import logging
import os
import sys
from argparse import ArgumentParser

from dotenv import load_dotenv

from drive_auth.core.exceptions import AuthorizationError, UpstreamError
from .client import ImplicitDriveClient
from .consent import InstalledAppConsent

logger = logging.getLogger(__name__)


def main() -> int:
    load_dotenv()
    # Google echoes previously granted scopes in the token response
    os.environ.setdefault("OAUTHLIB_RELAXED_TOKEN_SCOPE", "1")
    parser = ArgumentParser(description="List your 10 most recently modified Drive files.")
    parser.add_argument(
        "--client-id",
        default=os.getenv("GOOGLE_CLIENT_ID") or os.getenv("VITE_GOOGLE_CLIENT_ID"),
    )
    parser.add_argument("--client-secret", default=os.getenv("GOOGLE_CLIENT_SECRET"))
    args = parser.parse_args()
    if not args.client_id:
        parser.error("a client id is required (--client-id or GOOGLE_CLIENT_ID)")

    client = ImplicitDriveClient(InstalledAppConsent(args.client_id, args.client_secret))
    try:
        files = asyncio.run(client.list_files())
    except AuthorizationError as e:
        print(f"Authorization required: {e}", file=sys.stderr)
        return 1
    except UpstreamError as e:
        print(f"Unable to fetch files: {e}", file=sys.stderr)
        return 1

    print("Files:")
    for f in files:
        print(f.name)
    return 0


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    sys.exit(main())
