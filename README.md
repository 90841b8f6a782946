# faustlsp

A Language Server Protocol (LSP) server for the Faust audio programming
language. It speaks JSON-RPC over standard input and output, so any editor
with an LSP client can start it.

## What it does

- Handles the LSP life cycle: `initialize`, `initialized`, `shutdown` and
  `exit`. It answers `initialize` with full text-document synchronization and
  workspace-folder support. Any message other than `initialize` before the
  server is initialized, and any message other than `exit` after `shutdown`,
  stops the server with an error.
- Keeps document contents in sync through full-text synchronization
  (`textDocument/didOpen`, `textDocument/didChange`, `textDocument/didClose`).
- On `initialized`, loads every file under the workspace root into memory. It
  copies the workspace into a private temporary directory, then watches the
  workspace on disk with `watchdog`. The copy follows both the editor buffers
  and the files on disk. While a document is open in the editor, the editor's
  content wins over changes on disk.

## Installation

```
pip install .
```

To run the test suite, install with the test extra:

```
pip install ".[test]"
pytest
```

## Running

Have your editor start the server with the command:

```
faustlsp
```

Option:

- `--log-file PATH` sets where the log is written. By default the log goes to
  `/tmp/faust-lsp-log.txt` on Linux, macOS and the BSDs, and to
  `faust-lsp-log.txt` in the current directory elsewhere. The file is
  truncated each time the server starts.

The server reads LSP messages from stdin and writes responses to stdout. Each
message is framed by a `Content-Length` header. The server stops in any of
these cases:

- it receives the `exit` notification;
- stdin is closed;
- the input is malformed;
- it gets SIGINT or SIGTERM.

Exit status:

- 0 after `shutdown` followed by `exit`, or when stopped by a signal;
- 1 in every other case. The server then writes
  `Ending because of error (...)` to stderr.

The temporary workspace copy is removed when the server ends.

## Using the pieces from Python

- `faustlsp.transport.Transport` reads and writes framed messages over any
  pair of binary streams, or over TCP (`TransportMethod.SOCKET`, port 5007 by
  default).
- `faustlsp.transport.split_message` and `get_method` split and inspect raw
  messages.
- `request_message`, `response_message` and `notification_message` build
  JSON-RPC objects.

```python
import io
from faustlsp.transport import Transport, TransportType, TransportMethod, get_method

out = io.BytesIO()
incoming = io.BytesIO(b'Content-Length: 17\r\n\r\n{"method":"exit"}')
t = Transport(TransportType.SERVER, TransportMethod.STDIN, reader=incoming, writer=out)
msg = t.read()
print(get_method(msg))  # exit
t.write_notification("initialized", {})
```

The other modules:

- `faustlsp.server.Server` runs the message loop. `Server.run` raises
  `ServerError` on an unclean end.
- `faustlsp.uri.uri_to_path` turns a `file://` URI into a filesystem path.
  `is_windows_path` tells whether a path starts with a drive letter.
- `faustlsp.files.FileStore` is the thread-safe in-memory store of documents
  that the server keeps.
- `faustlsp.workspace.Workspace` mirrors editor events (`TDEvent`) and disk
  events (`DiskEvent`) into the temporary copy.
- `faustlsp.replicate.watch_replicate_dir` mirrors changes in one directory
  into another until a `threading.Event` is set.
- `faustlsp.log.init_logging` points the package logger at a file.

## What it does not do

The server only keeps documents and the workspace copy up to date. It offers
no language features:

- no diagnostics, completion, hover, go-to-definition or formatting;
- no incremental document changes, only full-text changes;
- the `faustlsp` command only talks over stdin and stdout. The TCP transport
  is available from Python alone.