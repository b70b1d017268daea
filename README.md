# atlas-toolkit

Building blocks for services and their integration tests:

- **Health endpoints** (`atlas_toolkit.health`): `ChecksHandler` and
  `ChecksContextHandler` serve a liveness path and a readiness path. Each is
  a WSGI application, and `handle()` returns the status code for a request
  without a server.
- **Probes** (`atlas_toolkit.probes`): ready-made checks.
  `dns_probe_check(host, timeout)` fails unless the host name resolves in
  time; `http_get_check(url, timeout)` fails unless a GET returns `200 OK`,
  and never follows redirects. Both raise `CheckFailed`.
- **Transactions** (`atlas_toolkit.transaction`): one lazily opened
  transaction per request, bound to the current context, with after-commit
  hooks and an interceptor that commits on success and rolls back on error.
- **Field masks** (`atlas_toolkit.fieldmask`): `merge_with_mask` copies only
  the masked attribute paths from one object to another.
- **Migration versions** (`atlas_toolkit.version`): validators that compare
  the version recorded in `schema_migrations` with an exact version, a range,
  or the highest numbered `##_name.[up|down].sql` file in a directory.
- **Resource identifiers** (`atlas_toolkit.resource`): encode and decode
  `application/resource_type/resource_id` identifiers, with codecs
  registered per message type.
- **Integration helpers** (`atlas_toolkit.network`, `atlas_toolkit.process`,
  `atlas_toolkit.postgres`): find a free TCP port, start binaries, build Go
  packages, run Docker containers, and run a throwaway PostgreSQL database
  in a container.

The package has no dependencies outside the standard library. It supports
Python 3.10 and later.

## Health endpoints

```python
from atlas_toolkit.health import ChecksHandler

def database_ready():
    raise RuntimeError("database is still starting")

checks = ChecksHandler("/healthz", "/ready")
checks.add_readiness("database", database_ready)

checks.handle("GET", "/healthz")   # HTTPStatus.OK (200)
checks.handle("GET", "/ready")     # HTTPStatus.SERVICE_UNAVAILABLE (503)
checks.handle("POST", "/ready")    # HTTPStatus.METHOD_NOT_ALLOWED (405)
checks.handle("GET", "/elsewhere") # HTTPStatus.NOT_FOUND (404)
```

A check fails by raising an exception. A missing leading `/` on either path
is added for you; giving both the same path raises `ValueError`. Registering
a check under a name already in use replaces it, and a check of `None` is
skipped. Set `checks.fail_fast = True` to stop at the first failing check.

A handler is a WSGI application, so any WSGI server can serve it. The
response carries only the status; the body is empty on success and failure.

`ChecksContextHandler` works the same way, except that each check receives
the request context: the `context` argument of `handle(method, path,
context)`, or the WSGI environ when served over WSGI.

## Transactions

`Transaction(db)` wraps any object whose `begin(isolation_level)` method
returns a session with `commit()` and `rollback()`. The session is opened on
the first `begin()` or `begin_with_options(level)` and reused after that.

```python
from atlas_toolkit.transaction import begin_from_context, server_interceptor

interceptor = server_interceptor(db)

def handler(request):
    session = begin_from_context()
    ...

response = interceptor(request, handler)
```

The interceptor binds the transaction for the duration of the handler. If
the handler raises, the transaction is rolled back and the exception
propagates; otherwise it is committed and a commit failure is raised as
`CommitFailedError`. Hooks added with `add_after_commit_hook` run, without
arguments, after each successful commit. Outside an interceptor, bind a
transaction yourself with `transaction_scope(txn)`; `current_transaction()`
returns the bound one. `begin_from_context()` raises
`TransactionMissingError` when none is bound and `TransactionNoDatabaseError`
when it has no database. A rollback on a session whose `closed` attribute is
true raises `DatabaseUnavailableError`.

## Merging with a field mask

```python
from atlas_toolkit.fieldmask import merge_with_mask

merge_with_mask(source, dest, ["FieldA.FieldTwo", "FieldB.FieldOne"])
```

The mask is a sequence of dotted paths, an object with a `paths` attribute,
or `None`; an empty mask does nothing. Missing intermediate objects on
`dest` are created as the paths are walked, and paths that lead through
something without attributes are skipped. `FieldMaskError` is raised when
`source` or `dest` is `None`, when their types differ, or when a path names
an attribute that does not exist.

## Checking the migration version

```python
from atlas_toolkit.version import max_version_from, verify_migration_version

validator = max_version_from("migrations")
verify_migration_version(connection, validator)
```

`version_exactly(n)` and `version_range(lower, upper)` build validators
directly. `verify_migration_version` reads `schema_migrations` through a
DB-API connection and raises `MigrationVersionError` when:

- the table has no row, or a row without exactly two columns;
- the database is marked dirty;
- the version is outside what the validator accepts.

`max_version_from` raises `MigrationVersionError` for a `.sql` file whose
name has no `_` or does not start with a number.

## Resource identifiers

```python
from atlas_toolkit import resource

resource.register_application("simpleapp")
identifier = resource.encode(None, "externalapp/external_resource/id")
resource.decode(None, identifier)  # "externalapp/external_resource/id"
```

`register_codec(codec, message)` installs a codec for one message type, or
as default when `message` is `None`. `decode_int64` and `decode_bytes`
convert the decoded value, raising `ResourceError` when they cannot.
`set_plural()` makes `name()` add an `s`; `set_return_empty()` makes
`encode` return an empty `Identifier` for `None`. The settings are global;
`reset()` clears them.

## Test databases

```python
from atlas_toolkit.postgres import new_test_postgres_db

database = new_test_postgres_db(connect_postgres, name="orders")
stop = database.run_as_docker_container()
try:
    database.reset()
    ...
finally:
    stop()
```

`connect_postgres` stands for any function that takes a DSN string and
returns a DB-API connection. Without a `port`, the first free port from
35000 upwards is used. `check_connection()` polls every half second and
raises `DatabaseTimeoutError` after `timeout` seconds (10 by default).
Running containers and building Go packages needs `docker` and `go` on the
`PATH`.

## What this package does not do

- It bundles no database driver or ORM: transactions, migration checks and
  test databases work through objects you pass in.
- Health responses do not report which checks failed; only the status code
  tells.
- It provides no command-line program.