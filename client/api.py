# client/api.py

import requests


class BlogClientError(Exception):
    def __init__(self, code: int, message: str):
        super().__init__(f"{code}: {message}")
        self.code = code
        self.message = message


class BlogClient:
    """
    Thin wrapper over the blog HTTP API.

    The session keeps the login cookie between calls. Any object with the
    ``requests.Session`` call style works as ``session``.
    """

    def __init__(self, base_url: str = "http://localhost:4000", session=None):
        self.base_url = base_url.rstrip("/")
        self.session = session if session is not None else requests.Session()
        self.user_info = None

    def _url(self, path: str) -> str:
        return f"{self.base_url}{path}"

    def _unwrap(self, response):
        try:
            body = response.json()
        except ValueError:
            raise BlogClientError(response.status_code, response.text)
        if response.status_code >= 400 or body.get("status") != "ok":
            raise BlogClientError(
                body.get("code", response.status_code), body.get("message", "")
            )
        return body.get("data")

    # -------------------------------
    # Authentication-related functions
    # -------------------------------

    def register(self, username, password):
        response = self.session.post(
            self._url("/register"), json={"username": username, "password": password}
        )
        return self._unwrap(response)

    def login(self, username, password):
        """
        Logs in and keeps the session cookie. Returns ``{id, username}``.
        """
        response = self.session.post(
            self._url("/login"), json={"username": username, "password": password}
        )
        self.user_info = self._unwrap(response)
        return self.user_info

    def profile(self):
        """
        Returns the logged-in identity, or None when the session is not
        valid.
        """
        try:
            self.user_info = self._unwrap(self.session.get(self._url("/profile")))
        except BlogClientError as exc:
            if exc.code != 401:
                raise
            self.user_info = None
        return self.user_info

    def logout(self):
        self._unwrap(self.session.post(self._url("/logout")))
        self.user_info = None

    @property
    def username(self):
        return self.user_info["username"] if self.user_info else None

    # -------------------------
    # Posts
    # -------------------------

    @staticmethod
    def _post_form(title, summary, content, file):
        data = {"title": title, "summary": summary, "content": content}
        files = None
        if file is not None:
            name, payload = file
            files = {"file": (name, payload)}
        return data, files

    def create_post(self, title, summary, content, file=None):
        """
        ``file`` is an optional ``(filename, bytes)`` pair used as the cover.
        """
        data, files = self._post_form(title, summary, content, file)
        return self._unwrap(self.session.post(self._url("/post"), data=data, files=files))

    def edit_post(self, post_id, title, summary, content, file=None):
        data, files = self._post_form(title, summary, content, file)
        data["id"] = post_id
        return self._unwrap(self.session.put(self._url("/post"), data=data, files=files))

    def list_posts(self):
        return self._unwrap(self.session.get(self._url("/post")))

    def get_post(self, post_id):
        return self._unwrap(self.session.get(self._url(f"/post/{post_id}")))
