"""GitHub repository search, directory listings and raw file access."""

from typing import Optional

import requests
from pydantic import ValidationError

from collectors.base import FetchClient
from models import DirectoryEntry, Manifest, Repository

API_URL = "https://api.github.com"
SEARCH_URL = f"{API_URL}/search/repositories"
REPO_URL = API_URL + "/repos/{owner}/{repo}"
CONTENTS_URL = API_URL + "/repos/{owner}/{repo}/contents/{path}"
RAW_URL = "https://raw.githubusercontent.com/{owner}/{repo}/{ref}/{path}"

# The search API never returns more than this many results per query
SEARCH_RESULT_CAP = 1000
PAGE_SIZE = 100
PAGE_DELAY = 0.1

README_FILES = ["README.md", "readme.md", "Readme.md"]
README_PREVIEW_CHARS = 500
README_MIN_BREAK = 200

RAW_TIMEOUT = 10


def search_repositories(
    client: FetchClient,
    topic: str = "payload-plugin",
    max_results: int = SEARCH_RESULT_CAP,
    per_page: int = PAGE_SIZE,
) -> list[Repository]:
    """Find all non-archived repositories tagged with a topic.

    Pages through the search API, most recently updated first, until
    max_results repositories are collected, a short page is returned, or
    the API cap on raw results is reached. A repository that shifts onto
    a later page while paging is kept once.

    Raises:
        FetchError: If a page cannot be fetched.
    """
    print(f"Searching for repositories with {topic} topic...")

    repos: list[Repository] = []
    seen: set[int] = set()
    page = 1
    total_count = 0

    while True:
        response = client.fetch_with_retry(
            SEARCH_URL,
            params={
                "q": f"topic:{topic} fork:true",
                "sort": "updated",
                "order": "desc",
                "per_page": per_page,
                "page": page,
            },
        )
        data = response.json()

        if page == 1:
            total_count = data.get("total_count", 0)
            print(f"Found {total_count} repositories total")

        items = data.get("items") or []
        if not items:
            break

        for item in items:
            if item.get("archived") or item.get("id") in seen:
                continue
            try:
                repo = Repository.model_validate(item)
                seen.add(repo.id)
                repos.append(repo)
            except ValidationError as e:
                print(f"Warning: Skipping malformed repository {item.get('full_name')}: {e}")

        print(
            f"Fetched page {page} "
            f"({len(repos)}/{min(total_count, max_results)} repos)"
        )

        if len(repos) >= max_results or len(items) < per_page:
            break
        # Pages past the cap are rejected with 422
        if page * per_page >= SEARCH_RESULT_CAP:
            break

        page += 1
        client.sleep(PAGE_DELAY)

    return repos


def fetch_repository(client: FetchClient, owner: str, repo: str) -> Repository:
    """Fetch repository metadata.

    Raises:
        FetchError: If the request keeps failing.
        ValueError: If the repository does not exist.
    """
    response = client.fetch_with_retry(REPO_URL.format(owner=owner, repo=repo))
    if response.status_code == 404:
        raise ValueError(f"Repository {owner}/{repo} not found")
    return Repository.model_validate(response.json())


def list_directory(
    client: FetchClient, owner: str, repo: str, path: str, ref: str
) -> list[DirectoryEntry]:
    """List the entries of a repository directory at a ref.

    Returns an empty list if the directory does not exist.

    Raises:
        FetchError: If the request keeps failing.
    """
    url = CONTENTS_URL.format(owner=owner, repo=repo, path=path)
    response = client.fetch_with_retry(url, params={"ref": ref})
    if response.status_code == 404:
        return []

    contents = response.json()
    # A file path returns a single object instead of a list
    if not isinstance(contents, list):
        return []

    entries = []
    for item in contents:
        try:
            entries.append(DirectoryEntry.model_validate(item))
        except ValidationError:
            continue
    return entries


def raw_url(owner: str, repo: str, ref: str, path: str) -> str:
    return RAW_URL.format(owner=owner, repo=repo, ref=ref, path=path)


def fetch_manifest_at(
    session: requests.Session,
    owner: str,
    repo: str,
    ref: str,
    sub_path: str = "",
) -> Optional[Manifest]:
    """Fetch and parse package.json from a repository path.

    Returns None when the file is missing, unreadable or not a JSON object.
    """
    path = f"{sub_path}/package.json" if sub_path else "package.json"
    try:
        response = session.get(raw_url(owner, repo, ref, path), timeout=RAW_TIMEOUT)
        if not response.ok:
            return None
        data = response.json()
        if not isinstance(data, dict):
            return None
        return Manifest.model_validate(data)
    except (requests.RequestException, ValueError):
        return None


def fetch_manifest(
    session: requests.Session, repo: Repository, sub_path: str = ""
) -> Optional[Manifest]:
    """Fetch package.json from a repository's default branch."""
    return fetch_manifest_at(
        session, repo.owner.login, repo.name, repo.default_branch, sub_path
    )


def make_preview(content: str) -> str:
    """Cut README text down to a short preview.

    Takes the first 500 characters and, if a sentence or paragraph break
    falls after character 200, ends the preview there.
    """
    preview = content[:README_PREVIEW_CHARS]
    break_point = max(preview.rfind(". "), preview.rfind("\n\n"))
    if break_point > README_MIN_BREAK:
        preview = preview[: break_point + 1]
    return preview.strip()


def fetch_readme_preview(
    session: requests.Session, repo: Repository
) -> Optional[str]:
    """Fetch a README preview, trying common filename casings in order."""
    for filename in README_FILES:
        url = raw_url(repo.owner.login, repo.name, repo.default_branch, filename)
        try:
            response = session.get(url, timeout=RAW_TIMEOUT)
        except requests.RequestException:
            continue
        if response.ok:
            return make_preview(response.text)
    return None
