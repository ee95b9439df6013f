"""argparse command tree for the `atelier` CLI."""
