"""Command-line entry point.

Examples:
  # Serve webhooks with credentials from the default files
  githubbot

  # Label issues of a fixed repository, with debug logs
  githubbot --debug --github-org rancher --github-repo rancher

  # Print the labels a body would get, without starting the server
  githubbot --classify issue.md
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from pydantic import ValidationError

from githubbot import __version__
from githubbot.classifier import IssueClassifier, RuleSetError, load_rules
from githubbot.config import BotSettings, ConfigurationError, get_settings
from githubbot.github.client import GitHubClient


logger = logging.getLogger("githubbot")


def create_parser() -> argparse.ArgumentParser:
    """Create and configure the argument parser.

    Flags left unset fall back to environment variables, then defaults.
    """
    parser = argparse.ArgumentParser(
        prog="githubbot",
        description="Label newly opened GitHub issues from their description",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        default=None,
        help="Enable debug logs",
    )
    parser.add_argument(
        "--webhooktoken-file",
        dest="webhook_token_file",
        metavar="PATH",
        help="File holding the webhook secret [env: WEBHOOK_TOKEN_FILE]",
    )
    parser.add_argument(
        "--patoken-file",
        dest="patoken_file",
        metavar="PATH",
        help="File holding the GitHub personal access token [env: PA_TOKEN_FILE]",
    )
    parser.add_argument(
        "--github-org",
        metavar="ORG",
        help="Organization to label issues in [env: GH_ORG]",
    )
    parser.add_argument(
        "--github-repo",
        metavar="REPO",
        help="Repository to label issues in [env: GH_REPO]",
    )
    parser.add_argument(
        "--rules-file",
        metavar="PATH",
        help="JSON file replacing the built-in classification rules",
    )
    parser.add_argument("--host", help="Address to bind to (default: 0.0.0.0)")
    parser.add_argument("--port", type=int, help="Port to listen on (default: 3000)")
    parser.add_argument(
        "--classify",
        metavar="FILE",
        help="Print the labels for an issue body read from FILE ('-' for stdin) and exit",
    )
    return parser


def configure_logging(debug: bool) -> None:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    if debug:
        logging.getLogger().setLevel(logging.DEBUG)
        logger.debug("Debug logging set")


def build_classifier(settings: BotSettings) -> IssueClassifier:
    rules = load_rules(settings.rules_file) if settings.rules_file else None
    return IssueClassifier(rules)


def run_classify(classifier: IssueClassifier, source: str) -> int:
    """Print one label per line for the body in ``source``."""
    if source == "-":
        body = sys.stdin.read()
    else:
        # newline="" keeps \r\n, which the kind pattern relies on
        with open(Path(source), encoding="utf-8", newline="") as f:
            body = f.read()

    for label in classifier.classify(body):
        print(label)
    return 0


def serve(settings: BotSettings, classifier: IssueClassifier) -> int:
    """Load credentials and run the web server until interrupted."""
    import uvicorn

    from githubbot.main import create_app

    webhook_secret = settings.load_webhook_secret()
    github_client = GitHubClient(
        token=settings.load_token(),
        base_url=settings.github_base_url,
    )
    app = create_app(
        settings,
        webhook_secret=webhook_secret,
        github_client=github_client,
        classifier=classifier,
    )
    uvicorn.run(
        app,
        host=settings.host,
        port=settings.port,
        log_level="debug" if settings.debug else "info",
    )
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """Parse arguments, build settings and run the requested mode.

    Returns:
        Process exit code: 0 on success, 1 on configuration errors.
    """
    parser = create_parser()
    args = parser.parse_args(argv)

    try:
        settings = get_settings(
            debug=args.debug,
            webhook_token_file=args.webhook_token_file,
            patoken_file=args.patoken_file,
            github_org=args.github_org,
            github_repo=args.github_repo,
            rules_file=args.rules_file,
            host=args.host,
            port=args.port,
        )
    except ValidationError as e:
        configure_logging(False)
        logger.error("Invalid configuration: %s", e)
        return 1

    configure_logging(settings.debug)

    try:
        classifier = build_classifier(settings)
        if args.classify:
            try:
                return run_classify(classifier, args.classify)
            except OSError as e:
                logger.error("Could not read %s: %s", args.classify, e)
                return 1
        return serve(settings, classifier)
    except (ConfigurationError, RuleSetError) as e:
        logger.error("%s", e)
        return 1


if __name__ == "__main__":
    sys.exit(main())
