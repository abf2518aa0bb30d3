"""Protean Engine runner for the ticketing domain.

Starts Engine workers that process messages asynchronously in production:
- OutboxProcessor: publishes committed events to the broker
- StreamSubscriptions: run ticket issuance, delivery, invoicing and projectors

Usage:
    PROTEAN_ENV=production python src/server.py
"""

import asyncio

from protean.server.engine import Engine

from ticketing.domain import ticketing


async def run():
    ticketing.init()
    engine = Engine(ticketing)
    await engine.run()


def main():
    asyncio.run(run())


if __name__ == "__main__":
    main()
