"""dualsub-cli: Command line interface for dualsub."""
