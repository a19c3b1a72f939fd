import os
import argparse
from tqdm import tqdm
from tqdm.contrib.logging import logging_redirect_tqdm
from .config import DEFAULT_SUFFIX, setup_logging
from .errors import DecompressionError
from .lzss import decompress, decompress_overlay


def output_path_of(input_path: str, destination: str, suffix: str) -> str:
    directory = destination if destination is not None else os.path.dirname(input_path)
    return os.path.join(directory, os.path.basename(input_path) + suffix)


def decompress_single_file(input_path: str, output_path: str, overlay: bool) -> int:
    """Returns the decompressed size"""
    with open(input_path, "rb") as infile:
        if overlay:
            data = decompress_overlay(infile)
        else:
            data = decompress(infile)
    try:
        with open(output_path, "wb") as outfile:
            outfile.write(data)
    except OSError:
        # A partial output would be skipped as existing on the next run
        if os.path.exists(output_path):
            os.remove(output_path)
        raise
    return len(data)


def parse_args(argv=None):
    parser = argparse.ArgumentParser(prog="nitro-lzss", description="Decompress LZSS10/LZSS11 compressed files")
    parser.add_argument("files", nargs="+", help="compressed input files")
    parser.add_argument("-o", "--destination", default=None, help="output directory (default: beside each input)")
    parser.add_argument("--suffix", default=DEFAULT_SUFFIX, help="appended to output file names (default: %(default)s)")
    parser.add_argument("--overlay", action="store_true", help="inputs are backwards compressed ARM9 overlays")
    parser.add_argument("-f", "--force", action="store_true", help="overwrite existing output files")
    parser.add_argument("-v", "--verbose", action="store_true", help="debug logging")
    return parser.parse_args(argv)


def main(argv=None) -> int:
    args = parse_args(argv)
    logger = setup_logging(args.verbose)

    if args.destination is not None:
        os.makedirs(args.destination, exist_ok=True)

    failed = []
    files = args.files
    with logging_redirect_tqdm(loggers=[logger]):
        pbar = tqdm(files, disable=len(files) < 2)
        for input_path in pbar:
            pbar.set_description(os.path.basename(input_path))
            output_path = output_path_of(input_path, args.destination, args.suffix)
            if not args.force and os.path.exists(output_path):
                logger.info("Skipping {}, {} already exists".format(input_path, output_path))
                continue
            try:
                size = decompress_single_file(input_path, output_path, args.overlay)
            except (DecompressionError, OSError) as ex:
                logger.error("Failed to decompress {}: {}".format(input_path, ex))
                failed.append(input_path)
                continue
            logger.debug("Wrote {} bytes to {}".format(size, output_path))

    if failed:
        logger.error("{} of {} files failed".format(len(failed), len(files)))
        return 1
    return 0
