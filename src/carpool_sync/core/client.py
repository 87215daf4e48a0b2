import threading
from typing import Any

import requests

from ..config import Config
from ..exceptions import RemoteUnreachableError


class SupabaseClient:
    """Point queries against the single shared document row.

    Talks to a PostgREST endpoint (``<url>/rest/v1/<table>``) whose table
    has an ``id`` primary key and a JSON ``payload`` column.  Every failure
    (transport error, non-2xx status, undecodable body) is raised as
    ``RemoteUnreachableError``.
    """

    def __init__(self, config: Config):
        self.config = config
        self._thread_local = threading.local()
        self.table_url = self._get_table_url()

    @property
    def session(self) -> requests.Session:
        """Return the current thread's session."""
        return self._get_session()

    def _get_table_url(self) -> str:
        return f"{self.config.supabase_url.rstrip('/')}/rest/v1/{self.config.table}"

    def _get_session(self) -> requests.Session:
        """Get or create a thread-local requests.Session."""
        if not hasattr(self._thread_local, "session"):
            self._thread_local.session = self._create_session()
        return self._thread_local.session

    def _create_session(self) -> requests.Session:
        session = requests.Session()
        session.headers.update(
            {
                "apikey": self.config.supabase_key,
                "Authorization": f"Bearer {self.config.supabase_key}",
            }
        )
        return session

    def _row_filter(self) -> str:
        return f"eq.{self.config.row_id}"

    def _request(self, method: str, **kwargs: Any) -> requests.Response:
        """
        Send one request to the table endpoint and check its status.
        """
        session = self._get_session()
        try:
            response = session.request(
                method,
                self.table_url,
                timeout=self.config.request_timeout,
                **kwargs,
            )
        except requests.RequestException as exc:
            raise RemoteUnreachableError(
                f"{method} {self.config.table} failed: {exc}"
            ) from exc

        if not 200 <= response.status_code < 300:
            raise RemoteUnreachableError(
                f"HTTP {response.status_code} from {self.config.table}: "
                f"{response.text[:200]}",
                status_code=response.status_code,
            )
        return response

    def select_row(self) -> dict[str, Any] | None:
        """
        Fetch the document row.  Returns ``None`` when the row does not exist.
        """
        response = self._request(
            "GET",
            params={"select": "payload", "id": self._row_filter()},
        )
        try:
            rows = response.json()
        except ValueError as exc:
            raise RemoteUnreachableError(
                f"Invalid JSON from {self.config.table}: {response.text[:200]}"
            ) from exc

        if not isinstance(rows, list):
            raise RemoteUnreachableError(
                f"Unexpected response shape from {self.config.table}: "
                f"{type(rows).__name__}"
            )
        if not rows:
            return None
        return rows[0]

    def upsert_row(self, payload: dict[str, Any]) -> None:
        """
        Create or replace the document row with *payload*.
        """
        self._request(
            "POST",
            json={"id": self.config.row_id, "payload": payload},
            headers={
                "Prefer": "resolution=merge-duplicates,return=minimal"
            },
        )

    def check_row(self) -> bool:
        """
        Cheapest existence check (HEAD with an exact count).

        Returns True when the endpoint answers with a 2xx status.
        """
        self._request(
            "HEAD",
            params={"select": "id", "id": self._row_filter()},
            headers={"Prefer": "count=exact"},
        )
        return True
