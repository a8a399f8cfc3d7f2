#!/usr/bin/env python3

import json
from cli.companies import add_company_argument, open_tenant
from errors import ChartwellError
from llm import get_command_generator
from logger import get_logger

logger = get_logger("cli")

_CONFIRM = {"yes", "y", "confirm"}
_CANCEL = {"no", "n", "cancel"}
_QUIT = {"quit", "exit"}


def _answer(pipeline, reply):
    """Handle a confirmation prompt, if the reply asks for one; return the last reply."""
    print(reply.message)
    while reply.awaiting_confirmation:
        answer = input("\nConfirm? (yes/no): ").strip().lower()
        if answer in _CONFIRM:
            reply = pipeline.confirm()
            print(reply.message)
        elif answer in _CANCEL:
            reply = pipeline.cancel()
            print(reply.message)
    return reply


def cmd_chat(args, services):
    """Talk to the assistant about the chart of accounts."""
    generator = get_command_generator(services.config)
    if generator is None:
        raise ValueError("The assistant is disabled; set [llm] enabled = true in the config")

    tenant = open_tenant(args, services, generator=generator)
    pipeline = tenant.pipeline
    print(f"Assistant for {tenant.company.name}. Type 'quit' to leave.")

    while True:
        try:
            text = input("\n> ").strip()
        except EOFError:
            break
        if not text:
            continue
        if text.lower() in _QUIT:
            break
        try:
            _answer(pipeline, pipeline.handle_message(text))
        except ChartwellError as e:
            logger.error(f"{e}")

    tenant.close()


def cmd_run(args, services):
    """Run commands from a JSON file, asking for confirmation."""
    tenant = open_tenant(args, services)
    with open(args.file, "r") as f:
        raw = json.load(f)

    pipeline = tenant.pipeline
    reply = pipeline.submit(raw)
    if args.yes and reply.awaiting_confirmation:
        print(reply.message)
        reply = pipeline.confirm()
        print(reply.message)
    else:
        reply = _answer(pipeline, reply)

    if reply.error is not None:
        raise reply.error


def setup_parser(subparsers):
    """Setup assistant subcommand parser.

    Args:
        subparsers: The subparsers object from the main CLI
    """
    parser = subparsers.add_parser(
        "assistant",
        help="Change categories and payees with commands or chat",
        description="Chat with the assistant, or run a JSON file of commands",
    )

    assistant_subparsers = parser.add_subparsers(
        title="subcommands",
        description="Available assistant commands",
        dest="subcommand",
        required=True,
    )

    chat_parser = assistant_subparsers.add_parser("chat", help="Interactive assistant")
    chat_parser.set_defaults(func=cmd_chat)

    run_parser = assistant_subparsers.add_parser("run", help="Run commands from JSON")
    run_parser.add_argument("file", help='JSON command, list, or {"action": "batch_execute"}')
    run_parser.add_argument("--yes", "-y", action="store_true", help="Do not ask")
    run_parser.set_defaults(func=cmd_run)

    for subparser in assistant_subparsers.choices.values():
        add_company_argument(subparser)
