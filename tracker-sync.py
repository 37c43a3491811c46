#!/usr/bin/env python3
"""
tracker-sync
Pulls Linear, GitHub and Figma data, keeps local snapshots of Linear
collections and renders results as JSON or CSV.
"""

from tracker_sync.cli import run


if __name__ == "__main__":
    run()
