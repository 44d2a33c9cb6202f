#!/usr/bin/env python3
"""Run kvpress from a source checkout.

Usage:
    python run.py --op set --total 100000 --worker 20
    python run.py --op get --total 100000 --pipeline 10 --need-fakedata
    python run.py --op zscore --total 50000 --total-key 1000 --need-fakedata --total-data 20000
"""

from kvpress.run import cli

if __name__ == "__main__":
    cli()
