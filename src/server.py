"""Protean Engine runner for the delivery domain.

With the production overlay (async event processing) the Engine polls the
outbox and feeds domain events to the order timeline projector.

Usage:
    PROTEAN_ENV=production python src/server.py
    PROTEAN_ENV=production python src/server.py --test-mode
"""

import argparse

from protean.server.engine import Engine


def main():
    parser = argparse.ArgumentParser(description="Delivery Engine runner")
    parser.add_argument(
        "--test-mode",
        action="store_true",
        help="Process pending messages once and exit",
    )
    args = parser.parse_args()

    from delivery.domain import delivery

    delivery.init()
    engine = Engine(delivery, test_mode=args.test_mode)
    engine.run()


if __name__ == "__main__":
    main()
