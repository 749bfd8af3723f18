"""
Blog API client

HTTP client for the Blog API plus an in-memory post list that applies
optimistic updates and rolls them back when the server rejects them.
Authentication is passed in explicitly as an AuthContext.
"""
import os
import logging
import uuid
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

import httpx

logger = logging.getLogger(__name__)

BLOG_API_URL = os.getenv("BLOG_API_URL", "http://localhost:5000/api")
DEFAULT_TIMEOUT = 10.0


class ApiClientError(Exception):
    """Request failed; carries the server's message and field errors."""

    def __init__(self, message: str, status_code: Optional[int] = None, details: Optional[list] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.details = details or []

    @property
    def field_errors(self) -> Dict[str, str]:
        """Field name -> message, for inline form errors."""
        return {d.get("field"): d.get("message") for d in self.details}


@dataclass
class AuthContext:
    """Supplies the bearer token for outgoing requests."""
    token_getter: Optional[Callable[[], Optional[str]]] = None

    def headers(self) -> Dict[str, str]:
        if self.token_getter is None:
            return {}
        try:
            token = self.token_getter()
        except Exception as e:
            # Request goes out unauthenticated and the server answers 401
            logger.error(f"Error getting auth token: {e}")
            return {}
        if not token:
            logger.warning("No auth token available - user may not be signed in")
            return {}
        return {"Authorization": f"Bearer {token}"}


class BlogClient:
    """
    Thin wrapper over the REST endpoints. Every method returns the decoded
    JSON envelope and raises ApiClientError for non-2xx responses.
    """

    def __init__(
        self,
        base_url: str = BLOG_API_URL,
        auth: Optional[AuthContext] = None,
        http: Optional[httpx.Client] = None,
    ):
        self.auth = auth or AuthContext()
        self.http = http or httpx.Client(base_url=base_url.rstrip("/"), timeout=DEFAULT_TIMEOUT)

    def close(self) -> None:
        self.http.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.close()

    def _request(self, method: str, path: str, **kwargs) -> Dict[str, Any]:
        headers = {**self.auth.headers(), **kwargs.pop("headers", {})}
        try:
            response = self.http.request(method, path, headers=headers, **kwargs)
        except httpx.HTTPError as e:
            logger.error(f"{method} {path} failed: {e}")
            raise ApiClientError(f"Request failed: {e}") from e

        if response.is_error:
            try:
                body = response.json()
            except ValueError:
                body = {}
            raise ApiClientError(
                body.get("error") or f"Request failed with status {response.status_code}",
                response.status_code,
                body.get("details"),
            )
        return response.json()

    # Posts

    def list_posts(self, page: int = 1, limit: int = 10, category: str = None, search: str = None) -> Dict[str, Any]:
        params = {"page": page, "limit": limit}
        if category:
            params["category"] = category
        if search:
            params["search"] = search
        return self._request("GET", "/posts", params=params)

    def get_post(self, id_or_slug: str) -> Dict[str, Any]:
        return self._request("GET", f"/posts/{id_or_slug}")

    def create_post(self, post_data: Dict[str, Any]) -> Dict[str, Any]:
        return self._request("POST", "/posts", json=post_data)

    def update_post(self, post_id: str, post_data: Dict[str, Any]) -> Dict[str, Any]:
        return self._request("PUT", f"/posts/{post_id}", json=post_data)

    def delete_post(self, post_id: str) -> Dict[str, Any]:
        return self._request("DELETE", f"/posts/{post_id}")

    def add_comment(self, post_id: str, content: str) -> Dict[str, Any]:
        return self._request("POST", f"/posts/{post_id}/comments", json={"content": content})

    def upload_image(self, filename: str, content: bytes, content_type: str) -> Dict[str, Any]:
        files = {"image": (filename, content, content_type)}
        return self._request("POST", "/posts/upload", files=files)

    # Categories

    def list_categories(self) -> Dict[str, Any]:
        body = self._request("GET", "/categories")
        body.setdefault("data", [])
        return body

    def get_category(self, id_or_slug: str) -> Dict[str, Any]:
        return self._request("GET", f"/categories/{id_or_slug}")

    def create_category(self, category_data: Dict[str, Any]) -> Dict[str, Any]:
        return self._request("POST", "/categories", json=category_data)

    # Auth

    def get_current_user(self) -> Dict[str, Any]:
        return self._request("GET", "/auth/me")


@dataclass
class Pagination:
    page: int = 1
    total_pages: int = 1
    total: int = 0


@dataclass
class PostStore:
    """
    Ephemeral post list state.

    Mutations are applied locally first. When the server confirms, the local
    entry is replaced by the server's copy; when it fails, the list is
    restored to the snapshot taken before the mutation and `error` is set.
    """
    client: BlogClient
    page_size: int = 9
    posts: List[Dict[str, Any]] = field(default_factory=list)
    loading: bool = False
    error: Optional[str] = None
    pagination: Pagination = field(default_factory=Pagination)

    def fetch_posts(self, page: int = 1, category: str = None, search: str = None) -> Dict[str, Any]:
        self.loading = True
        self.error = None
        try:
            response = self.client.list_posts(page, self.page_size, category, search)
        except ApiClientError as e:
            self.error = e.message or "Failed to load posts"
            raise
        finally:
            self.loading = False

        self.posts = response.get("data") or []
        self.pagination = Pagination(
            page=response.get("page") or 1,
            total_pages=response.get("pages") or 1,
            total=response.get("total") or 0,
        )
        return response

    def _replace(self, post_id: str, post: Dict[str, Any]) -> None:
        self.posts = [post if p.get("_id") == post_id else p for p in self.posts]

    def _rollback(self, snapshot: List[Dict[str, Any]], error: ApiClientError) -> None:
        self.posts = snapshot
        self.error = error.message

    def create_post(self, post_data: Dict[str, Any]) -> Dict[str, Any]:
        snapshot = list(self.posts)
        temp_id = f"temp-{uuid.uuid4().hex}"
        self.posts = [{**post_data, "_id": temp_id, "pending": True}] + self.posts

        try:
            created = self.client.create_post(post_data)["data"]
        except ApiClientError as e:
            self._rollback(snapshot, e)
            raise

        self._replace(temp_id, created)
        return created

    def update_post(self, post_id: str, changes: Dict[str, Any]) -> Dict[str, Any]:
        snapshot = list(self.posts)
        self.posts = [
            {**p, **changes} if p.get("_id") == post_id else p for p in self.posts
        ]

        try:
            updated = self.client.update_post(post_id, changes)["data"]
        except ApiClientError as e:
            self._rollback(snapshot, e)
            raise

        self._replace(post_id, updated)
        return updated

    def delete_post(self, post_id: str) -> None:
        snapshot = list(self.posts)
        self.posts = [p for p in self.posts if p.get("_id") != post_id]

        try:
            self.client.delete_post(post_id)
        except ApiClientError as e:
            self._rollback(snapshot, e)
            raise
