# token_agent/scripts/cli.py
from __future__ import annotations

import argparse
import json
import os
from typing import Callable, Optional

import httpx


DEFAULT_BACKEND_URL = "http://localhost:3000/prompt"

FORMAT_CHOICES = {
    "1": "text/plain",
    "2": "application/json",
    "3": "text/markdown",
}
FORMAT_NAMES = {
    "text": "text/plain",
    "json": "application/json",
    "markdown": "text/markdown",
}
EXIT_WORDS = {"exit", "quit"}


def choice_to_accept(choice: str) -> str:
    return FORMAT_CHOICES.get(choice.strip(), "text/plain")


def backend_url_from_env() -> str:
    value = os.getenv("TOKEN_INFO_BACKEND_URL")
    if value and value.strip():
        return value.strip()
    return DEFAULT_BACKEND_URL


def ask_format(input_fn: Callable[[str], str] = input) -> str:
    print(
        "Select response format:\n"
        "1. Plain Text\n"
        "2. JSON\n"
        "3. Markdown Table"
    )
    answer = input_fn("Enter the number for desired format [1]: ")
    return choice_to_accept(answer) if answer.strip() else "text/plain"


def send_prompt(client: httpx.Client, url: str, accept: str, prompt: str) -> str:
    """Return the text to print for one query; never raises on HTTP failures."""
    try:
        response = client.post(url, json={"prompt": prompt}, headers={"Accept": accept})
    except httpx.HTTPError as exc:
        return f"Error fetching response: {exc}"

    if response.status_code >= 400:
        return f"Error: Received status code {response.status_code}"

    if accept == "application/json":
        return "\nResponse (JSON):\n" + json.dumps(response.json(), indent=2, ensure_ascii=False)
    return "\nResponse:\n" + response.text


def run_session(
    client: httpx.Client,
    url: str,
    accept: str,
    input_fn: Callable[[str], str] = input,
) -> None:
    while True:
        try:
            query = input_fn("Query> ").strip()
        except EOFError:
            query = ""
        if not query or query.lower() in EXIT_WORDS:
            print("Exiting... Goodbye!")
            return
        print(send_prompt(client, url, accept, query))


def main(argv: Optional[list[str]] = None) -> None:
    parser = argparse.ArgumentParser(description="Token Info Agent terminal client")
    parser.add_argument("--url", default=None, help=f"Backend /prompt URL (default {DEFAULT_BACKEND_URL})")
    parser.add_argument("--format", choices=sorted(FORMAT_NAMES), default=None)
    parser.add_argument("--timeout", type=float, default=30.0)
    args = parser.parse_args(argv)

    print("Token Info Agent CLI")
    accept = FORMAT_NAMES[args.format] if args.format else ask_format()
    url = args.url or backend_url_from_env()

    with httpx.Client(timeout=args.timeout) as client:
        run_session(client, url, accept)


if __name__ == "__main__":
    main()
