"""Command-line interface for itermcat."""

from __future__ import annotations

import logging
from typing import Any

import click

from itermcat import __version__
from itermcat.codec import CODEC_CHOICES, select_codec
from itermcat.config import config_file, get_config, update_config
from itermcat.directives import DisplayDirectives, parse_size_spec
from itermcat.encoder import ImageFrameEncoder
from itermcat.errors import InvalidSizeSpec, MissingDependency, NoImageProduced, SourceUnavailable
from itermcat.sources import fetch_url, is_url, read_file, read_stdin, stdin_has_data
from itermcat.transport import Transport, resolve_tty_name

logger = logging.getLogger(__name__)

EPILOG = """\b
The width and height are given as word 'auto' or number N followed by a unit:
    N      character cells
    Npx    pixels
    N%     percent of the session's width or height
    auto   the image's inherent size will be used to determine an appropriate dimension

\b
If a type is provided, it is used as a hint to disambiguate. The file type
can be a mime type like text/markdown, a language name like Java, or a file
extension like .c

\b
Examples:
    $ itermcat -W 250px -H 250px -s avatar.png
    $ cat graph.png | itermcat -W 100%
    $ itermcat -p -W 500px http://host.tld/path/to/image.jpg image.png
    $ itermcat -t application/json config.json
"""

# ctx.meta keys for options where the last flag given wins
ASPECT_KEY = "itermcat.preserve_aspect_ratio"
SOURCE_KIND_KEY = "itermcat.source_kind"


def _remember(key: str, value: Any):
    """Build a callback that records value under key when the flag is given."""

    def callback(ctx: click.Context, param: click.Parameter, flag: bool) -> None:
        if flag:
            ctx.meta[key] = value

    return callback


def _validate_size(ctx: click.Context, param: click.Parameter, value: str | None) -> str | None:
    if not value:
        return None
    try:
        return str(parse_size_spec(value))
    except InvalidSizeSpec as e:
        raise click.BadParameter(str(e), ctx=ctx, param=param) from e


def _configure_logging(log_file: str) -> None:
    logging.basicConfig(
        level=logging.DEBUG,
        format="%(asctime)s %(name)s %(levelname)s: %(message)s",
        filename=log_file,
        filemode="a",
    )
    logging.getLogger("itermcat").setLevel(logging.DEBUG)


def _read_source(source: str, kind: str | None, timeout: float) -> bytes:
    if kind == "url" or (kind is None and is_url(source)):
        return fetch_url(source, timeout=timeout)
    return read_file(source)


def _describe_failure(error: SourceUnavailable, kind: str | None) -> str:
    if kind == "url" or (kind is None and is_url(error.source)):
        return f"Could not retrieve image from URL {error.source} ({error.reason})"
    return f"itermcat: {error.source}: {error.reason}"


def build_command(config: dict[str, Any]) -> click.Command:
    """Create the itermcat command with defaults taken from config."""

    @click.command(
        context_settings={"help_option_names": ["-h", "--help"]},
        epilog=EPILOG,
    )
    @click.argument("sources", nargs=-1)
    @click.option(
        "--print/--no-print",
        "-p/-n",
        "print_filename",
        default=bool(config.get("print_filename")),
        help="Print the filename or URL after each image",
        show_default=True,
    )
    @click.option(
        "-u",
        "--url",
        is_flag=True,
        expose_value=False,
        callback=_remember(SOURCE_KIND_KEY, "url"),
        help="Interpret all source arguments as remote URLs",
    )
    @click.option(
        "-f",
        "--file",
        is_flag=True,
        expose_value=False,
        callback=_remember(SOURCE_KIND_KEY, "file"),
        help="Interpret all source arguments as regular files",
    )
    @click.option("-t", "--type", "file_type", metavar="FILE-TYPE", help="Provides a type hint")
    @click.option(
        "-r",
        "--preserve-aspect-ratio",
        is_flag=True,
        expose_value=False,
        callback=_remember(ASPECT_KEY, True),
        help="When scaling image preserve its original aspect ratio",
    )
    @click.option(
        "-s",
        "--stretch",
        is_flag=True,
        expose_value=False,
        callback=_remember(ASPECT_KEY, False),
        help="Stretch image to specified width and height (opposite of -r)",
    )
    @click.option(
        "-W",
        "--width",
        metavar="N",
        default=config.get("width") or None,
        callback=_validate_size,
        help="Set image width to N character cells, pixels or percent",
    )
    @click.option(
        "-H",
        "--height",
        metavar="N",
        default=config.get("height") or None,
        callback=_validate_size,
        help="Set image height to N character cells, pixels or percent",
    )
    @click.option(
        "-l",
        "--legacy",
        is_flag=True,
        default=bool(config.get("legacy")),
        help="Use legacy protocol that sends the whole image in a single control sequence",
    )
    @click.option(
        "--codec",
        "codec_name",
        type=click.Choice(CODEC_CHOICES),
        default=config.get("codec", "auto"),
        help="Base64 implementation",
        show_default=True,
    )
    @click.option(
        "--save",
        is_flag=True,
        help="Save display options to config for future runs",
    )
    @click.option(
        "--debug",
        is_flag=True,
        envvar="IMGCAT_DEBUG",
        help=f"Enable debug logging to {config.get('debug_log_file')}",
    )
    @click.version_option(__version__, prog_name="itermcat")
    @click.pass_context
    def run(
        ctx: click.Context,
        sources: tuple[str, ...],
        print_filename: bool,
        file_type: str | None,
        width: str | None,
        height: str | None,
        legacy: bool,
        codec_name: str,
        save: bool,
        debug: bool,
    ) -> None:
        """Display images inline in iTerm2 using the Inline Images Protocol.

        SOURCES are image files or http(s) URLs. Without SOURCES the image is
        read from stdin.
        """
        if debug:
            _configure_logging(config["debug_log_file"])
        logger.debug("Arguments: sources=%s", sources)

        use_stdin = not sources and stdin_has_data()
        if not sources and not use_stdin:
            click.echo(ctx.get_help(), err=True)
            return

        try:
            codec = select_codec(codec_name)
        except MissingDependency as e:
            raise click.ClickException(str(e)) from e

        preserve_aspect_ratio = ctx.meta.get(ASPECT_KEY, config.get("preserve_aspect_ratio"))
        source_kind = ctx.meta.get(SOURCE_KIND_KEY)

        if save:
            update_config(
                {
                    "print_filename": print_filename,
                    "legacy": legacy,
                    "width": width or "",
                    "height": height or "",
                    "preserve_aspect_ratio": preserve_aspect_ratio,
                    "codec": codec_name,
                }
            )
            click.echo(f"Saved settings to {config_file()}", err=True)

        directives = DisplayDirectives(
            inline=True,
            print_filename_after=print_filename,
            width=width,
            height=height,
            preserve_aspect_ratio=preserve_aspect_ratio,
            file_type_hint=file_type,
            use_legacy_protocol=legacy,
        )

        url_timeout = float(config["url_timeout"])

        with Transport.from_environment(tty_resolver=resolve_tty_name) as transport:
            logger.debug("Emitting to %s", transport.target.value)
            encoder = ImageFrameEncoder(transport, codec)

            for source in sources:
                try:
                    data = _read_source(source, source_kind, url_timeout)
                except SourceUnavailable as e:
                    logger.debug("Skipping %s: %s", e.source, e.reason)
                    click.echo(f"Error: {_describe_failure(e, source_kind)}", err=True)
                    continue
                try:
                    encoder.display(data, directives.with_filename(source))
                except ValueError as e:
                    logger.debug("Could not encode %s: %s", source, e)
                    click.echo(f"Error: itermcat: {source}: {e}", err=True)

            if use_stdin:
                data = read_stdin()
                if data:
                    try:
                        encoder.display(data, directives.with_filename(None))
                    except ValueError as e:
                        logger.debug("Could not encode stdin: %s", e)
                        click.echo(f"Error: itermcat: stdin: {e}", err=True)
                else:
                    logger.debug("No data received from stdin")

        if encoder.images_displayed == 0:
            click.echo(f"Error: {NoImageProduced()}", err=True)
            click.echo(ctx.get_help(), err=True)
            ctx.exit(1)

    return run


def main() -> None:
    """Entry point for the itermcat command."""
    build_command(get_config())()


if __name__ == "__main__":
    main()
