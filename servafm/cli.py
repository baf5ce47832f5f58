"""
servafm CLI：保存一次服务地址，之后所有命令都使用它（也可用 --base-url 临时覆盖）。
"""

from __future__ import annotations

import asyncio
import json
import sys
from pathlib import Path
from typing import Annotated, Any, Awaitable, Callable, Optional

import typer

from servafm.cli_config import clear_config, load_config, resolve_environment, save_config
from servafm.client import FileManagerClient
from servafm.errors import DownloadBlocked, FileManagerError
from servafm.events import DownloadEvent, DownloadState
from servafm.logging_config import setup_logging
from servafm.models import Environment, FileEntry
from servafm.uploader import DEFAULT_CHUNK_SIZE

POPUP_BLOCKED_MESSAGE = (
    "Multiple file download blocked by browser. "
    "Allow pop-ups for this site, or download the remaining items one at a time."
)


def _format_size(n: int) -> str:
    """将字节数格式化为人类可读（KiB/MiB/GiB）。"""
    if n < 1024:
        return f"{n} B"
    if n < 1024 * 1024:
        return f"{n / 1024:.1f} KiB"
    if n < 1024 * 1024 * 1024:
        return f"{n / (1024 * 1024):.1f} MiB"
    return f"{n / (1024 * 1024 * 1024):.1f} GiB"


def _make_progress_callback(filename: str) -> tuple[Callable[[int, int], None], Callable[[], None]]:
    """返回 (on_progress(sent, total), finish)。进度条输出到 stderr，每 5% 刷新一次。"""
    last_pct = [-1]
    bar_width = 24

    def on_progress(sent: int, total_bytes: int) -> None:
        pct = 100 if total_bytes <= 0 else min(100, int(100 * sent / total_bytes))
        if pct == last_pct[0] or (pct % 5 and sent != total_bytes):
            return
        last_pct[0] = pct
        filled = bar_width * pct // 100
        bar = ("=" * filled).ljust(bar_width)
        sys.stderr.write(f"\r  {filename} [{bar}] {pct}% {_format_size(sent)}/{_format_size(total_bytes)}   ")
        sys.stderr.flush()

    def finish() -> None:
        sys.stderr.write("\n")
        sys.stderr.flush()

    return on_progress, finish


def _print_download_event(event: DownloadEvent) -> None:
    if event.state == DownloadState.STARTING:
        typer.echo(f"Downloading {event.total} file(s)")
    elif event.state == DownloadState.STEPPING:
        typer.echo(f"Downloaded {event.current}/{event.total} file(s)")
    elif event.state == DownloadState.STOPPING and event.current < event.total:
        typer.echo(f"Downloaded {event.current}/{event.total} file(s)")


app = typer.Typer(
    name="servafm",
    help="Serva file manager CLI. Save the server address once; every command uses it.",
)

_base_url_option = Annotated[
    Optional[str],
    typer.Option("--base-url", "-b", help="Override saved server URL (required if not connected)"),
]
_dev_option = Annotated[
    Optional[bool],
    typer.Option("--dev/--no-dev", help="Development mode: talk to http://localhost:3000"),
]


@app.callback()
def main_callback(
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Enable debug logging")] = False,
) -> None:
    setup_logging("servafm", "DEBUG" if verbose else None)


def _make_client(environment: Environment) -> FileManagerClient:
    return FileManagerClient(environment)


def _require_environment(base_url: str | None, dev: bool | None) -> Environment:
    environment = resolve_environment(base_url, dev)
    if environment is None:
        typer.echo("error: no saved server. run 'servafm connect' or pass --base-url", err=True)
        raise typer.Exit(1)
    return environment


def _run(
    base_url: str | None,
    dev: bool | None,
    action: Callable[[FileManagerClient], Awaitable[Any]],
) -> Any:
    """创建客户端执行 action；领域错误输出为 error: <message> 并以 1 退出。"""
    environment = _require_environment(base_url, dev)

    async def runner() -> Any:
        client = _make_client(environment)
        try:
            return await action(client)
        finally:
            await client.close()

    try:
        return asyncio.run(runner())
    except DownloadBlocked as e:
        typer.echo(f"error: {e.message}", err=True)
        typer.echo(POPUP_BLOCKED_MESSAGE, err=True)
        raise typer.Exit(1)
    except FileManagerError as e:
        typer.echo(f"error: {e.message}", err=True)
        raise typer.Exit(1)
    except KeyboardInterrupt:
        typer.echo("Aborted.", err=True)
        raise typer.Exit(130)


def _key(path: str) -> str:
    """条目 key：去掉首尾空白与斜杠，根目录为 ""。"""
    return (path or "").strip().strip("/")


def _split_parent(path: str) -> tuple[str, str]:
    key = _key(path)
    if "/" in key:
        parent, name = key.rsplit("/", 1)
        return parent.strip("/"), name
    return "", key


# ------------------------- connect / disconnect / info -------------------------


@app.command("connect", help="Save server address to local config")
def connect(
    base_url: Annotated[Optional[str], typer.Option("--base-url", "-b", help="Server URL")] = None,
    dev: Annotated[bool, typer.Option("--dev", help="Development mode")] = False,
) -> None:
    base_url = base_url or input("Server URL (e.g. http://127.0.0.1:3000): ").strip()
    if not base_url:
        typer.echo("error: server URL required", err=True)
        raise typer.Exit(1)
    save_config(base_url, dev)
    typer.echo("Saved.")


@app.command("disconnect", help="Clear saved server address")
def disconnect() -> None:
    if clear_config():
        typer.echo("Cleared.")
    else:
        typer.echo("No saved server.")


@app.command("info", help="Show saved server address")
def info_cmd() -> None:
    cfg = load_config()
    if not cfg:
        typer.echo("Not connected. Run 'servafm connect' or pass --base-url for commands.")
        return
    typer.echo(f"base_url: {cfg.get('base_url')}")
    typer.echo(f"dev_mode: {'yes' if cfg.get('dev_mode') else 'no'}")


# ------------------------- config -------------------------


@app.command("config", help="Print server configuration and permissions (JSON)")
def config_cmd(base_url: _base_url_option = None, dev: _dev_option = None) -> None:
    async def action(client: FileManagerClient) -> None:
        config = await client.get_config()
        typer.echo(json.dumps(config.to_dict(), ensure_ascii=False, indent=2))

    _run(base_url, dev, action)


# ------------------------- list / ls -------------------------


def _cmd_list_impl(path: str, base_url: str | None, dev: bool | None) -> None:
    async def action(client: FileManagerClient) -> None:
        for item in await client.get_items(_key(path)):
            modified = item.modified_at.strftime("%Y-%m-%d %H:%M:%S")
            size = _format_size(item.size) if isinstance(item, FileEntry) else "-"
            kind = "d" if item.is_directory else "f"
            typer.echo(f"  {kind}  {item.path}  {size}  {modified}")

    _run(base_url, dev, action)


@app.command("list", help="List directory")
def list_cmd(
    path: Annotated[str, typer.Argument(help="Directory key (default: root)")] = "",
    base_url: _base_url_option = None,
    dev: _dev_option = None,
) -> None:
    _cmd_list_impl(path, base_url, dev)


@app.command("ls", help="Alias for list")
def ls_cmd(
    path: Annotated[str, typer.Argument(help="Directory key (default: root)")] = "",
    base_url: _base_url_option = None,
    dev: _dev_option = None,
) -> None:
    _cmd_list_impl(path, base_url, dev)


# ------------------------- upload -------------------------


@app.command("upload", help="Upload a file in chunks (aborted remotely on failure or Ctrl-C)")
def upload_cmd(
    path: Annotated[Path, typer.Argument(help="Local file path")],
    folder: Annotated[str, typer.Option("--folder", "-f", help="Remote directory key")] = "",
    name: Annotated[Optional[str], typer.Option("--name", "-n", help="Remote file name (default: local name)")] = None,
    chunk_size: Annotated[int, typer.Option("--chunk-size", help="Chunk size in bytes", min=1)] = DEFAULT_CHUNK_SIZE,
    progress: Annotated[bool, typer.Option("--progress", "-p", help="Show upload progress")] = False,
    base_url: _base_url_option = None,
    dev: _dev_option = None,
) -> None:
    if not path.is_file():
        typer.echo(f"error: not a file: {path}", err=True)
        raise typer.Exit(1)
    remote_name = name or path.name
    on_progress, progress_finish = _make_progress_callback(remote_name) if progress else (None, lambda: None)

    async def action(client: FileManagerClient) -> int:
        try:
            return await client.upload_file(
                _key(folder), path, name=remote_name, chunk_size=chunk_size, on_progress=on_progress
            )
        finally:
            progress_finish()

    count = _run(base_url, dev, action)
    typer.echo(f"Uploaded {count} chunk(s).")


# ------------------------- download -------------------------


@app.command("download", help="Open download links for one or more items in the browser")
def download_cmd(
    keys: Annotated[list[str], typer.Argument(help="Item keys, downloaded in order")],
    base_url: _base_url_option = None,
    dev: _dev_option = None,
) -> None:
    async def action(client: FileManagerClient) -> None:
        await client.download_items([_key(k) for k in keys], listener=_print_download_event)

    _run(base_url, dev, action)
    typer.echo("Done.")


# ------------------------- mkdir / cp / mv / rm / rename -------------------------


@app.command("mkdir", help="Create a directory (e.g. data/newdir)")
def mkdir_cmd(
    path: Annotated[str, typer.Argument(help="Key of the new directory")],
    base_url: _base_url_option = None,
    dev: _dev_option = None,
) -> None:
    parent, new_name = _split_parent(path)
    if not new_name:
        typer.echo("error: directory name required", err=True)
        raise typer.Exit(1)
    _run(base_url, dev, lambda client: client.create_directory(parent, new_name))
    typer.echo("Created.")


@app.command("cp", help="Copy an item into a directory")
def cp_cmd(
    source: Annotated[str, typer.Argument(help="Item key")],
    dest_dir: Annotated[str, typer.Argument(help="Destination directory key")],
    base_url: _base_url_option = None,
    dev: _dev_option = None,
) -> None:
    _run(base_url, dev, lambda client: client.copy_item(_key(source), _key(dest_dir)))
    typer.echo("Copied.")


@app.command("mv", help="Move an item into a directory")
def mv_cmd(
    source: Annotated[str, typer.Argument(help="Item key")],
    dest_dir: Annotated[str, typer.Argument(help="Destination directory key")],
    base_url: _base_url_option = None,
    dev: _dev_option = None,
) -> None:
    _run(base_url, dev, lambda client: client.move_item(_key(source), _key(dest_dir)))
    typer.echo("Moved.")


@app.command("rm", help="Delete a file or directory")
def rm_cmd(
    path: Annotated[str, typer.Argument(help="Item key")],
    base_url: _base_url_option = None,
    dev: _dev_option = None,
) -> None:
    _run(base_url, dev, lambda client: client.delete_item(_key(path)))
    typer.echo("Deleted.")


@app.command("rename", help="Rename an item in place")
def rename_cmd(
    path: Annotated[str, typer.Argument(help="Item key")],
    new_name: Annotated[str, typer.Argument(help="New name (no slashes)")],
    base_url: _base_url_option = None,
    dev: _dev_option = None,
) -> None:
    if "/" in new_name or "\\" in new_name:
        typer.echo(f"error: invalid name: {new_name}", err=True)
        raise typer.Exit(1)
    _run(base_url, dev, lambda client: client.rename_item(_key(path), new_name))
    typer.echo("Renamed.")


# ------------------------- main -------------------------


def main() -> None:
    app()


if __name__ == "__main__":
    main()
