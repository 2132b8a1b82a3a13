"""Pipeline coordination core: ledger, stage machine, artifact slots, runner."""
