"""CLI for reaction payments.

Runs the two services and an in-process charge simulation.
"""

import asyncio
from collections import Counter
from typing import Dict, List, Optional

import typer
from rich.console import Console
from rich.table import Table

from reaction_payments.client.gateway import LocalPaymentGateway
from reaction_payments.client.orchestrator import RetryOrchestrator
from reaction_payments.config import get_settings
from reaction_payments.core.authorizer import PaymentAuthorizer
from reaction_payments.core.failure_injection import build_failure_injector
from reaction_payments.core.models import ChargeResult
from reaction_payments.monitoring.logging import setup_logging

app = typer.Typer(
    name="reaction-payments",
    help="Reaction payments - token-based micro-charges with retries",
    add_completion=False,
)

console = Console()


@app.command("serve-payments")
def serve_payments(
    port: Optional[int] = typer.Option(None, "--port", "-p", help="Port to bind"),
) -> None:
    """Run the payment authority API."""
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "reaction_payments.api.main:app",
        host=settings.api_host,
        port=port or settings.payments_port,
        log_level=settings.log_level.lower(),
    )


@app.command("serve-reactions")
def serve_reactions(
    port: Optional[int] = typer.Option(None, "--port", "-p", help="Port to bind"),
) -> None:
    """Run the reactions API against the configured payment authority."""
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "reaction_payments.api.reactions:app",
        host=settings.api_host,
        port=port or settings.reactions_port,
        log_level=settings.log_level.lower(),
    )


async def run_simulation(
    orchestrator: RetryOrchestrator, identities: List[str], charges: int, subject_id: str
) -> Dict[str, List[ChargeResult]]:
    """Fire every charge for every identity concurrently."""
    owners = [identity for identity in identities for _ in range(charges)]
    outcomes = await asyncio.gather(
        *(orchestrator.charge(identity, subject_id) for identity in owners)
    )
    results: Dict[str, List[ChargeResult]] = {identity: [] for identity in identities}
    for identity, result in zip(owners, outcomes):
        results[identity].append(result)
    return results


@app.command()
def simulate(
    identities: List[str] = typer.Argument(..., help="Identities to charge"),
    charges: int = typer.Option(8, "--charges", "-n", help="Concurrent charges per identity"),
    subject_id: str = typer.Option("song-1", "--subject", "-s", help="Charged subject id"),
    policy: str = typer.Option("rate", "--policy", help="Failure policy (content/rate/none)"),
    modulo: int = typer.Option(4, "--modulo", help="Rate policy failure period"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose output"),
) -> None:
    """Simulate concurrent charges against an in-process payment authority."""
    settings = get_settings()
    if verbose:
        setup_logging(settings.model_copy(update={"log_level": "DEBUG", "log_format": "console"}))

    injector = build_failure_injector(
        policy,
        marker=settings.failure_marker,
        modulo=modulo,
        delay=settings.failure_delay,
        phase=settings.failure_phase,
    )
    authorizer = PaymentAuthorizer(injector=injector, cap=settings.spending_cap)
    orchestrator = RetryOrchestrator(
        LocalPaymentGateway(authorizer),
        unit_charge=settings.unit_charge,
        max_attempts=settings.max_attempts,
        backoff_strategy=settings.backoff_strategy,
        initial_delay=0.0,
        multiplier=settings.backoff_multiplier,
    )

    results = asyncio.run(run_simulation(orchestrator, identities, charges, subject_id))

    table = Table(title=f"Simulation (cap={settings.spending_cap}, policy={policy})")
    table.add_column("Identity", style="cyan")
    table.add_column("Accepted", justify="right", style="green")
    table.add_column("Limit exceeded", justify="right", style="yellow")
    table.add_column("Failed", justify="right", style="red")
    table.add_column("Ledger total", justify="right")

    for identity, charge_results in results.items():
        counts = Counter(result.status.value for result in charge_results)
        table.add_row(
            identity,
            str(counts.get("ACCEPTED", 0)),
            str(counts.get("LIMIT_EXCEEDED", 0)),
            str(counts.get("SIMULATED_FAILURE", 0) + counts.get("TOKEN_REUSED", 0)),
            str(authorizer.ledger.total_for(identity)),
        )

    console.print(table)


def main() -> None:
    """Entry point for the console script."""
    app()


if __name__ == "__main__":
    main()
