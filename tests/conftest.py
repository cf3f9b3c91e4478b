import pytest

from server import ROUTE_TABLES, ServerConfig, create_app


@pytest.fixture
def site_dir(tmp_path):
    """Base directory with the pages of both route tables and a few assets."""
    site = tmp_path / "site"
    site.mkdir()

    (site / "index.html").write_text("<h1>Home</h1>")
    (site / "index-fake.html").write_text("<h1>Fake</h1>")
    (site / "index-real.html").write_text("<h1>Real</h1>")
    (site / "index-other.html").write_text("<h1>Other</h1>")
    (site / "style.css").write_text("body { color: red; }")
    (site / "data.bin").write_bytes(b"\x00\x01\x02\x03")

    slides = site / "slides"
    slides.mkdir()
    (slides / "intro.html").write_text("<section>Intro</section>")
    (slides / "logo.png").write_bytes(b"\x89PNG\r\n\x1a\n")
    (slides / "index.html").write_text("<h1>Slides</h1>")

    # Directory without an index page
    (site / "fonts").mkdir()

    # Hidden files, must never be served
    (site / ".env").write_text("SECRET_KEY=hunter2")
    git = site / ".git"
    git.mkdir()
    (git / "config").write_text("[core]")

    # Outside the base directory, must never be served
    (tmp_path / "secret.txt").write_text("top secret")

    return site


@pytest.fixture
def make_client(site_dir):
    """Build a test client for the given route table variant."""

    def _make(variant="index"):
        config = ServerConfig(root=site_dir, routes=ROUTE_TABLES[variant])
        app = create_app(config)
        app.config["TESTING"] = True
        return app.test_client()

    return _make
