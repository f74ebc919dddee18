"""CLI entry point.

    python main.py serve --port 8000
    python main.py evaluate samples.json --template mention_spike --threshold 3
"""

import argparse
import json
import sys

from src.logging_config import LogFormat, LoggingConfig, configure_logging
from src.notifications import (
    EngineConfig,
    MetricSample,
    NotificationEngine,
    RULE_TEMPLATES,
    ValidationError,
)


def _load_samples(path: str) -> list[MetricSample]:
    with open(path) as f:
        data = json.load(f)
    if isinstance(data, dict):
        data = data.get("samples", [])
    return [
        MetricSample(
            platform=item["platform"],
            brand_mentioned=item.get("brand_mentioned", item.get("brandMentioned", False)),
            sentiment=item.get("sentiment", 0.0),
            competitors_mentioned=tuple(
                item.get("competitors_mentioned", item.get("competitorsMentioned", ()))
            ),
            position_delta=item.get("position_delta", item.get("positionDelta")),
            citation_count=item.get("citation_count", item.get("citationCount")),
        )
        for item in data
    ]


def cmd_serve(args: argparse.Namespace) -> int:
    import uvicorn

    from src.api import create_app

    app = create_app(setup_logging=True)
    uvicorn.run(app, host=args.host, port=args.port, log_config=None)
    return 0


def cmd_evaluate(args: argparse.Namespace) -> int:
    configure_logging(LoggingConfig(format=LogFormat.CONSOLE))

    engine = NotificationEngine(EngineConfig(snapshot_path=args.snapshot))
    if args.snapshot:
        try:
            engine.load()
        except (OSError, ValidationError) as e:
            print(f"Could not load snapshot {args.snapshot}: {e}", file=sys.stderr)
            engine.close()
            return 2
    for name in args.template or []:
        engine.create_rule_from_template(name, threshold=args.threshold, cooldown_seconds=0)
    if not engine.list_rules():
        print("No rules to evaluate: pass --template or a --snapshot with rules", file=sys.stderr)
        return 2

    try:
        samples = _load_samples(args.samples)
    except (OSError, ValueError, KeyError, ValidationError) as e:
        print(f"Could not read samples from {args.samples}: {e}", file=sys.stderr)
        return 2

    result = engine.ingest(samples)

    print("=" * 60)
    print("MENTIONWATCH - RULE EVALUATION")
    print(f"Samples: {len(samples)}  Rules evaluated: {result.evaluated}  Fired: {len(result.fired_rule_ids)}")
    print("=" * 60)
    for n in result.notifications:
        channels = ", ".join(sorted(c.value for c in n.channels)) or "-"
        print(f"[{n.priority.value.upper():8s}] {n.title}")
        print(f"           {n.message}")
        print(f"           channels: {channels}")
    for intent in result.deliveries:
        print(f"  -> {intent.channel.value}: {intent.status.value}")

    if args.snapshot:
        engine.save()
    engine.close()
    return 0


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(
        description="MentionWatch - brand mention notifications and alerting"
    )
    sub = parser.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", help="Run the HTTP API")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=8000)
    serve.set_defaults(func=cmd_serve)

    evaluate = sub.add_parser("evaluate", help="Evaluate alert rules against a samples file")
    evaluate.add_argument("samples", help="JSON file: a list of samples or {\"samples\": [...]}")
    evaluate.add_argument(
        "--template", action="append", choices=sorted(RULE_TEMPLATES),
        help="Rule template to evaluate (repeatable)",
    )
    evaluate.add_argument(
        "--threshold", type=float, default=None,
        help="Override the first condition threshold of each template",
    )
    evaluate.add_argument(
        "--snapshot", default=None,
        help="Snapshot file to load rules from and save results to",
    )
    evaluate.set_defaults(func=cmd_evaluate)

    args = parser.parse_args(argv)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
