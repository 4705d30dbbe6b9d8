#!/usr/bin/env python3
"""
List product image files on disk that no ProductImage row points to.
Usage:
  python scripts/find_orphan_images.py [--delete]

Files are left behind when a process dies between writing an upload and
committing its record. This script boots the Flask app context, compares the
files under <CONTENT_ROOT>/images/products with the stored image URLs, and
optionally removes the leftovers.
"""
import argparse
import os
import sys

# Ensure project root is on sys.path so `from storefront import ...` works when running this script directly
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from storefront import create_app, db
from storefront.models import ProductImage
from storefront.uploads import find_orphaned_images

parser = argparse.ArgumentParser()
parser.add_argument("--delete", action="store_true", help="remove the orphaned files")
args = parser.parse_args()

app = create_app()
with app.app_context():
    root = app.config.get("CONTENT_ROOT")
    if not root:
        print("CONTENT_ROOT is not configured")
        sys.exit(1)
    urls = [url for (url,) in db.session.query(ProductImage.image_url)]
    orphans = find_orphaned_images(root, urls)
    if not orphans:
        print("No orphaned images found")
    else:
        print(f"Found {len(orphans)} orphaned image(s) under {root}:\n")
        for path in orphans:
            print(f"- {path}")
            if args.delete:
                os.remove(path)
        if args.delete:
            print(f"\nDeleted {len(orphans)} file(s)")
