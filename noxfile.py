import nox

PYTHON_VERSIONS = ["3.11", "3.12", "3.13"]

# Packages with C extensions that must be rebuilt per Python version.
# Poetry's wheel cache can serve a .so compiled for the wrong interpreter.
_C_EXT_PACKAGES = ["psycopg2-binary"]


def _install(session: nox.Session) -> None:
    """Install the project with the test group into the nox virtualenv."""
    session.run("poetry", "install", "--with", "test", external=True)
    session.run("pip", "install", "--force-reinstall", "--no-cache-dir", *_C_EXT_PACKAGES)


@nox.session(python=PYTHON_VERSIONS)
def tests(session: nox.Session) -> None:
    """Run the full marketplace suite."""
    _install(session)
    session.run("pytest", *session.posargs)


@nox.session(python=PYTHON_VERSIONS)
def tests_domain(session: nox.Session) -> None:
    """Run domain-layer tests only (no infrastructure required)."""
    _install(session)
    session.run("pytest", "tests/marketplace/domain/")


@nox.session(python=PYTHON_VERSIONS)
def tests_webhooks(session: nox.Session) -> None:
    """Run the webhook pipeline: application, integration and BDD tests."""
    _install(session)
    session.run(
        "pytest",
        "tests/marketplace/application/",
        "tests/marketplace/integration/",
        "tests/marketplace/bdd/",
    )
