"""
Terminal client for the synthesis gateway.

Architectural role:
- Runs one synthesis request through the same in-process pipeline the HTTP
  endpoint uses, without starting a server.
- Prints the wire envelope as JSON so output matches what the browser client
  receives.

Usage:
    python -m gateway.api.cli --provider Gemini --type text "Describe hatching"
    python -m gateway.api.cli --provider "Stability AI" --type image \
        --aux aspect_ratio=1:1 "A graphite study of a pear"

Input handling:
- `--aux key=value` entries become payload fields next to `prompt`; values
  are decoded as JSON when possible (`--aux temperature=0.2` is a number).
- `--api-key` is optional; configured defaults and demo mode apply as usual.
- `--demo` forces demo mode for this invocation.

Exit codes:
- 0 when the envelope carries a result, 1 when it carries an error.
"""

import argparse
import dataclasses
import json
import sys

from gateway.api.envelope import build_envelope
from gateway.core.engine import SynthesisGateway
from gateway.providers.provider_config import GatewaySettings


def parse_aux(items):
    """Turn `key=value` strings into a payload mapping."""
    aux = {}
    for item in items or []:
        key, sep, value = item.partition("=")
        key = key.strip()
        if not sep or not key:
            raise argparse.ArgumentTypeError(f"invalid --aux entry '{item}', expected key=value")
        try:
            aux[key] = json.loads(value)
        except ValueError:
            aux[key] = value
    return aux


def build_parser():
    parser = argparse.ArgumentParser(prog="gateway-cli", description="Send one synthesis request.")
    parser.add_argument("prompt", help="Prompt text")
    parser.add_argument("--provider", required=True, help="Provider name or alias")
    parser.add_argument("--type", dest="kind", default="text", help="text, image or roadmap")
    parser.add_argument("--api-key", dest="api_key", default=None, help="Explicit credential")
    parser.add_argument("--aux", action="append", default=[], help="Extra payload field as key=value")
    parser.add_argument("--demo", action="store_true", help="Force demo mode")
    return parser


def main(argv=None, settings=None):
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        aux = parse_aux(args.aux)
    except argparse.ArgumentTypeError as err:
        parser.error(str(err))

    settings = settings or GatewaySettings.from_env()
    if args.demo:
        settings = dataclasses.replace(settings, demo_mode=True)
    gateway = SynthesisGateway.from_settings(settings)

    body = {
        "provider": args.provider,
        "type": args.kind,
        "payload": {**aux, "prompt": args.prompt},
    }
    if args.api_key:
        body["apiKey"] = args.api_key

    response = gateway.handle(body)
    status, envelope = build_envelope(response)
    print(json.dumps({"http_status": status, **envelope}, indent=2))
    return 0 if response.ok else 1


if __name__ == "__main__":
    sys.exit(main())
