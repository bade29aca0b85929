"""
Command-line entrypoint for the image proxy.

Interface responsibilities:
- `serve`: run the FastAPI adapter with uvicorn.
- `expand TEXT`: print the expanded image prompt.
- `generate TEXT`: expand (unless `--no-expand`) and write the image to a file.

Request lifecycle (`generate`):
1. Resolve `ProxyConfig` from the environment.
2. With `API_URL` configured, call the remote proxy over HTTP; otherwise run
   the orchestrator in-process.
3. Print the prompt used and the output path, or the error on stderr.

Error handling strategy:
- Every failure path prints the `{error}` message on stderr and exits 1.
"""

import argparse
import logging
import sys

import requests

from imageproxy.api import routes
from imageproxy.config import ProxyConfig, configure_logging
from imageproxy.core.types import ProxyResponse


logger = logging.getLogger(__name__)

MIME_EXTENSIONS = {
    "image/png": ".png",
    "image/jpeg": ".jpg",
    "image/webp": ".webp",
    "image/gif": ".gif",
}


def call_remote(base_url, path, body, timeout):
    """POST `body` to a remote proxy and wrap its reply as a `ProxyResponse`."""
    try:
        response = requests.post(f"{base_url}{path}", json=body, timeout=timeout)
    except requests.exceptions.RequestException as err:
        return ProxyResponse(status_code=502, body={"error": f"Proxy unreachable: {err}"})

    media_type = (response.headers.get("content-type") or "application/json").split(";")[0].strip()
    if media_type == "application/json":
        try:
            payload = response.json()
        except ValueError:
            payload = {"error": response.text or "Invalid response from proxy"}
        return ProxyResponse(status_code=response.status_code, body=payload)
    return ProxyResponse(status_code=response.status_code, body=response.content, media_type=media_type)


def call(config, path, body):
    if config.api_base_url:
        return call_remote(config.api_base_url, path, body, config.request_timeout)
    return routes.dispatch(path, body, config)


def _fail(result):
    message = result.body.get("error") if isinstance(result.body, dict) else None
    print(f"Error ({result.status_code}): {message or 'request failed'}", file=sys.stderr)
    return 1


def expand(config, text):
    """Return `(prompt, None)` on success or `(None, ProxyResponse)` on failure."""
    result = call(config, routes.GENERATE_PROMPT_PATH, {"text": text})
    if result.status_code != 200 or not isinstance(result.body, dict):
        return None, result
    return result.body.get("prompt"), None


def cmd_serve(config, args):
    import uvicorn

    from imageproxy.api.http_api import create_app

    uvicorn.run(create_app(config), host=args.host or config.host, port=args.port or config.port)
    return 0


def cmd_expand(config, args):
    prompt, failure = expand(config, args.text)
    if failure is not None:
        return _fail(failure)
    print(prompt)
    return 0


def cmd_generate(config, args):
    prompt = args.text
    if not args.no_expand:
        prompt, failure = expand(config, args.text)
        if failure is not None:
            return _fail(failure)
        print(f"Prompt: {prompt}")

    result = call(config, routes.GENERATE_IMAGE_PATH, {"prompt": prompt})
    if result.status_code != 200 or result.is_json:
        return _fail(result)

    out = args.out or "generated" + MIME_EXTENSIONS.get(result.media_type, ".png")
    with open(out, "wb") as f:
        f.write(result.body)
    print(f"Saved {result.media_type} image to {out}")
    return 0


def build_parser():
    parser = argparse.ArgumentParser(prog="imageproxy", description="AI image generation proxy")
    sub = parser.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", help="Run the HTTP proxy")
    serve.add_argument("--host", default=None)
    serve.add_argument("--port", type=int, default=None)
    serve.set_defaults(func=cmd_serve)

    exp = sub.add_parser("expand", help="Expand text into an image prompt")
    exp.add_argument("text")
    exp.set_defaults(func=cmd_expand)

    gen = sub.add_parser("generate", help="Generate an image from text")
    gen.add_argument("text")
    gen.add_argument("--out", default=None, help="Output file path")
    gen.add_argument("--no-expand", action="store_true", help="Use TEXT as the image prompt directly")
    gen.set_defaults(func=cmd_generate)

    return parser


def main(argv=None):
    args = build_parser().parse_args(argv)
    config = ProxyConfig.from_env()
    configure_logging(config)
    return args.func(config, args)


if __name__ == "__main__":
    sys.exit(main())
