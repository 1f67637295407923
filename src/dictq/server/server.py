from __future__ import annotations

import socket
import threading
import time
from pathlib import Path
from typing import List, Optional, Tuple

from dictq.model import ALL_DATABASES, DEFAULT_STRATEGY, FIRST_MATCH
from dictq.protocol.commands import quote
from dictq.protocol.decoders import tokenize
from dictq.protocol.lines import ENCODING, TERMINATOR, stuff
from dictq.server.corpus import ServerCorpus, load_corpus

Reply = List[str]


def _block(lines: List[str]) -> Reply:
    return [stuff(ln) for ln in lines] + [TERMINATOR]


class DictServer:
    """Multi-client TCP DICT simulator (thread-per-connection)."""

    def __init__(
        self,
        host: str,
        port: int,
        *,
        corpus: Optional[ServerCorpus] = None,
        corpus_path: Optional[Path] = None,
    ) -> None:
        self.host = host
        self.port = port
        self.corpus = corpus if corpus is not None else load_corpus(corpus_path)
        self.ready = threading.Event()
        self._stop = threading.Event()
        self._sock: Optional[socket.socket] = None

    def stop(self) -> None:
        self._stop.set()
        if self._sock is not None:
            try:
                self._sock.close()
            except OSError:
                pass

    # ---- lookups ----

    def _db_names(self) -> List[str]:
        return [d.name for d in self.corpus.databases]

    def _strategy_names(self) -> List[str]:
        return [s.name for s in self.corpus.strategies]

    def _targets(self, db: str) -> List[str]:
        return self._db_names() if db in (ALL_DATABASES, FIRST_MATCH) else [db]

    def _matches(self, strategy: str, word: str, headword: str) -> bool:
        if strategy == DEFAULT_STRATEGY:
            strategy = self.corpus.default_strategy
        w, h = word.casefold(), headword.casefold()
        if strategy == "prefix":
            return h.startswith(w)
        if strategy == "substring":
            return w in h
        return w == h

    # ---- commands ----

    def _show_db(self) -> Reply:
        dbs = self.corpus.databases
        if not dbs:
            return ["554 No databases present"]
        body = [f"{d.name} {quote(d.description)}" for d in dbs]
        return [f"110 {len(dbs)} databases present"] + _block(body) + ["250 ok"]

    def _show_strategies(self) -> Reply:
        strategies = self.corpus.strategies
        if not strategies:
            return ["555 No strategies available"]
        body = [f"{s.name} {quote(s.description)}" for s in strategies]
        return [f"111 {len(strategies)} strategies available"] + _block(body) + ["250 ok"]

    def _match(self, db: str, strategy: str, word: str) -> Reply:
        if db not in (ALL_DATABASES, FIRST_MATCH) and db not in self._db_names():
            return ["550 Invalid database, use \"SHOW DB\" for list of databases"]
        if strategy != DEFAULT_STRATEGY and strategy not in self._strategy_names():
            return ["551 Invalid strategy, use \"SHOW STRAT\" for a list of strategies"]

        found: List[str] = []
        for name in self._targets(db):
            hits = [h for h in self.corpus.definitions.get(name, {}) if self._matches(strategy, word, h)]
            found += [f"{name} {quote(h)}" for h in hits]
            if hits and db == FIRST_MATCH:
                break
        if not found:
            return ["552 No match"]
        return [f"152 {len(found)} matches found"] + _block(found) + ["250 ok"]

    def _define(self, db: str, word: str) -> Reply:
        if db not in (ALL_DATABASES, FIRST_MATCH) and db not in self._db_names():
            return ["550 Invalid database, use \"SHOW DB\" for list of databases"]

        descriptions = {d.name: d.description for d in self.corpus.databases}
        defs: List[Tuple[str, str, str]] = []
        for name in self._targets(db):
            for headword, text in self.corpus.definitions.get(name, {}).items():
                if headword.casefold() == word.casefold():
                    defs.append((headword, name, text))
            if defs and db == FIRST_MATCH:
                break
        if not defs:
            return ["552 No match"]

        out = [f"150 {len(defs)} definitions retrieved"]
        for headword, name, text in defs:
            out.append(f"151 {quote(headword)} {name} {quote(descriptions.get(name, ''))}")
            out += _block(text.rstrip("\n").split("\n"))
        return out + ["250 ok"]

    def _dispatch(self, line: str) -> Tuple[Reply, bool]:
        """Return (reply lines, close_after)."""
        tokens = tokenize(line)
        if not tokens:
            return ["500 Syntax error, command not recognized"], False

        cmd = tokens[0].upper()
        args = tokens[1:]

        if cmd == "QUIT":
            return ["221 bye"], True

        if cmd == "SHOW":
            what = args[0].upper() if args else ""
            if what in ("DB", "DATABASES"):
                return self._show_db(), False
            if what in ("STRAT", "STRATEGIES"):
                return self._show_strategies(), False
            return ["501 Syntax error, illegal parameters"], False

        if cmd in ("MATCH", "M"):
            if len(args) != 3:
                return ["501 Syntax error, illegal parameters"], False
            return self._match(*args), False

        if cmd in ("DEFINE", "D"):
            if len(args) != 2:
                return ["501 Syntax error, illegal parameters"], False
            return self._define(*args), False

        return ["500 Syntax error, command not recognized"], False

    # ---- connection handling ----

    def _send(self, conn: socket.socket, lines: Reply) -> bool:
        """Write reply lines; False if the connection should be dropped."""
        faults = self.corpus.faults
        limit = faults.drop_after_lines
        if limit is not None and len(lines) > limit:
            lines = lines[:limit]
            truncated = True
        else:
            truncated = False
        try:
            if faults.line_delay_s > 0:
                for ln in lines:
                    conn.sendall((ln + "\r\n").encode(ENCODING))
                    time.sleep(faults.line_delay_s)
            elif lines:
                conn.sendall("".join(ln + "\r\n" for ln in lines).encode(ENCODING))
        except OSError:
            return False
        return not truncated

    def _handle(self, conn: socket.socket, addr: Tuple[str, int]) -> None:
        with conn, conn.makefile("rb") as reader:
            greeting = self.corpus.faults.greeting or "220 dictq simulator <mime> <dictq@localhost>"
            if not self._send(conn, [greeting]) or not greeting.startswith("220"):
                return
            while not self._stop.is_set():
                try:
                    raw = reader.readline()
                except OSError:
                    return
                if not raw:
                    return
                line = raw.decode(ENCODING, errors="replace").rstrip("\r\n")
                if not line.strip():
                    continue
                reply, close_after = self._dispatch(line)
                if not self._send(conn, reply) or close_after:
                    return

    def serve_forever(self) -> None:
        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
            self._sock = s
            s.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            s.bind((self.host, self.port))
            s.listen()
            s.settimeout(0.5)
            self.port = s.getsockname()[1]
            self.ready.set()
            print(f"[server] listening on {self.host}:{self.port}")

            while not self._stop.is_set():
                try:
                    conn, addr = s.accept()
                except socket.timeout:
                    continue
                except OSError:
                    break
                conn.settimeout(None)
                threading.Thread(target=self._handle, args=(conn, addr), daemon=True).start()

            print("[server] shutdown complete")


def start_in_thread(server: DictServer, *, wait_s: float = 5.0) -> threading.Thread:
    """Run ``serve_forever`` on a daemon thread and wait until it is bound."""
    t = threading.Thread(target=server.serve_forever, daemon=True)
    t.start()
    if not server.ready.wait(wait_s):
        raise RuntimeError("DICT server did not start")
    return t
