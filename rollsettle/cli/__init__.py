"""
rollsettle/cli/__init__.py

rollsettle CLI — root Click command group.

Registered in pyproject.toml as:

    [project.scripts]
    rollsettle = "rollsettle.cli:cli"

Adding a new command:
    1. Create rollsettle/cli/your_command.py with a @click.command()
    2. Import it here
    3. cli.add_command(your_command)
"""

import click

from rollsettle.cli.prover import (
    claim_hash_command,
    hash_assignment_command,
    keygen_command,
    sign_assignment_command,
)


@click.group()
@click.version_option(package_name="rollsettle")
def cli() -> None:
    """
    rollsettle — off-ledger tooling for provers and claimants.

    \b
    Commands:
      keygen            Create an Ed25519 prover key.
      hash-assignment   Print the commitment hash of an assignment.
      sign-assignment   Sign an assignment and print it as JSON.
      claim-hash        Print the claim hash of a payload.

    \b
    Quick start:
      rollsettle keygen prover.pem
      rollsettle sign-assignment a.yaml --key prover.pem --verifier <addr> --blob-hash <hash>
    """
    pass


cli.add_command(keygen_command)
cli.add_command(hash_assignment_command)
cli.add_command(sign_assignment_command)
cli.add_command(claim_hash_command)
