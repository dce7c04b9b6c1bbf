#!/usr/bin/env python3
"""Seed a running books API with a demo user and a few books."""

import argparse

import httpx

SAMPLE_BOOKS = [
    {"title": "Dune", "author": "Frank Herbert", "genre": "SciFi", "yearOfPublishing": 1965, "isbn": "9780441013593"},
    {"title": "Emma", "author": "Jane Austen", "genre": "Classic", "yearOfPublishing": 1815, "isbn": "9780141439587"},
    {"title": "Neuromancer", "author": "William Gibson", "genre": "SciFi", "yearOfPublishing": 1984, "isbn": "9780441569595"},
    {"title": "The Hobbit", "author": "J. R. R. Tolkien", "genre": "Fantasy", "yearOfPublishing": 1937, "isbn": "9780547928227"},
]


def get_token(client: httpx.Client, base_url: str, username: str, password: str) -> str:
    """Sign up, falling back to login when the user already exists."""
    credentials = {"username": username, "password": password}
    response = client.post(f"{base_url}/auth/signup", json=credentials)
    if response.status_code == 409:
        response = client.post(f"{base_url}/auth/login", json=credentials)
    response.raise_for_status()
    return response.json()["token"]


def seed(base_url: str, username: str, password: str) -> dict:
    """Create the sample books and return a summary."""
    created = 0
    skipped = 0

    with httpx.Client(timeout=30.0) as client:
        token = get_token(client, base_url, username, password)
        headers = {"Authorization": f"Bearer {token}"}

        for book in SAMPLE_BOOKS:
            response = client.post(f"{base_url}/books", json=book, headers=headers)
            if response.status_code == 200:
                created += 1
                print(f"  Added: {book['title']}")
            else:
                skipped += 1
                detail = response.json().get("detail", response.text)
                print(f"  Skipped {book['title']} ({response.status_code}): {detail}")

        total = len(client.get(f"{base_url}/books", headers=headers).json())

    return {"created": created, "skipped": skipped, "total": total, "token": token}


def main():
    parser = argparse.ArgumentParser(description="Seed the books API with sample data")
    parser.add_argument(
        "--url",
        default="http://localhost:5000",
        help="Base URL of the books API",
    )
    parser.add_argument("--username", default="demo", help="Demo username")
    parser.add_argument("--password", default="demo-password", help="Demo password")

    args = parser.parse_args()

    print(f"Seeding {args.url} as '{args.username}'...")
    results = seed(args.url, args.username, args.password)

    print()
    print(f"Created:     {results['created']}")
    print(f"Skipped:     {results['skipped']}")
    print(f"Books owned: {results['total']}")
    print(f"Token:       {results['token']}")


if __name__ == "__main__":
    main()
