# upload_files.py
"""
Carica uno o piu' file locali su PublicKey File-API (localhost:3000).
- 1 file  -> campo `file` (con --name opzionale per rinominarlo)
- 2..10   -> campo `files` ripetuto

Esecuzione:
    python upload_files.py --username alice --key alice.<signature> report.pdf
Opzioni:
    --base-url http://127.0.0.1:3000
    --namespace progetti
    --name nome_finale.pdf
"""

import argparse
import mimetypes
import os
from contextlib import ExitStack
from pprint import pformat
import requests

def pretty(x): return pformat(x, width=110)

def api(base_url, method, path, *, headers=None, data=None, files=None, ok_codes=(200, 201)):
    url = base_url + path
    r = requests.request(method, url, headers=headers, data=data, files=files)
    if r.status_code not in ok_codes:
        raise RuntimeError(f"{method} {path} -> {r.status_code} : {r.text}")
    return r

def auth_headers(key):
    return {"Authorization": f"PublicKey {key}"}

def upload_path(username, namespace=None):
    return f"/files/{username}/{namespace}" if namespace else f"/files/{username}"

def upload(base_url, username, key, paths, *, namespace=None, name=None):
    if not paths:
        raise ValueError("At least one file is required")
    field = "file" if len(paths) == 1 else "files"
    data = {"name": name} if name and field == "file" else None
    with ExitStack() as stack:
        files = []
        for p in paths:
            mime = mimetypes.guess_type(p)[0] or "application/octet-stream"
            files.append((field, (os.path.basename(p), stack.enter_context(open(p, "rb")), mime)))
        r = api(base_url, "POST", upload_path(username, namespace),
                headers=auth_headers(key), data=data, files=files)
    return r.json()

def main(argv=None):
    ap = argparse.ArgumentParser()
    ap.add_argument("paths", nargs="+", help="File da caricare (max 10)")
    ap.add_argument("--username", required=True)
    ap.add_argument("--key", required=True, help="Public key <username>.<signature>")
    ap.add_argument("--namespace", default=None)
    ap.add_argument("--name", default=None, help="Rinomina (solo upload singolo)")
    ap.add_argument("--base-url", default="http://127.0.0.1:3000")
    args = ap.parse_args(argv)

    api(args.base_url, "GET", "/ping")
    result = upload(args.base_url, args.username, args.key, args.paths,
                    namespace=args.namespace, name=args.name)
    print(pretty(result))
    return result

if __name__ == "__main__":
    main()
