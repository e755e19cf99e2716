import argparse
import logging
import os

import uvicorn
from dotenv import load_dotenv

from covergen.api import create_app
from covergen.settings import RenderDefaults


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Serve the cover-image composition API."
    )
    parser.add_argument(
        "--host",
        default="0.0.0.0",
        help="Interface to bind.",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=8010,
        help="Port to listen on.",
    )
    return parser.parse_args()


def main() -> None:
    # Load environment variables from a local .env file if present
    # (e.g. COVERGEN_API_TOKEN=...).
    load_dotenv()

    logging.basicConfig(
        level=os.environ.get("COVERGEN_LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )

    args = parse_args()
    app = create_app(defaults=RenderDefaults.from_env())
    uvicorn.run(app, host=args.host, port=args.port)


if __name__ == "__main__":
    main()
