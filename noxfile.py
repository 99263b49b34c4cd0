import nox

PYTHON_VERSIONS = ["3.11", "3.12", "3.13", "3.14"]

nox.options.sessions = ["tests"]


def _install(session: nox.Session) -> None:
    """Install parcelbroker and its test group with poetry."""
    session.run("poetry", "install", "--with", "test", "--all-extras", external=True)


def _pytest(session: nox.Session, *targets: str) -> None:
    _install(session)
    session.run("pytest", *targets, *session.posargs)


@nox.session(python=PYTHON_VERSIONS)
def tests(session: nox.Session) -> None:
    """Whole suite on every supported interpreter."""
    _pytest(session)


@nox.session(python=PYTHON_VERSIONS[-1])
def tests_domain(session: nox.Session) -> None:
    """Aggregates, markup and the transition table; no FastAPI involved."""
    _pytest(session, "tests/logistics/domain/")


@nox.session(python=PYTHON_VERSIONS[-1])
def tests_bdd(session: nox.Session) -> None:
    """Ledger, promotion and lifecycle scenarios."""
    _pytest(session, "-m", "bdd")


@nox.session(python=PYTHON_VERSIONS[-1])
def tests_fast(session: nox.Session) -> None:
    """Everything except the slower API tests."""
    _pytest(session, "-m", "not slow")
