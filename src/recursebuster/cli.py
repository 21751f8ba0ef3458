import argparse
import logging
import sys

from recursebuster.config import Config, logger, load_env_defaults
from recursebuster.enumerator import DirectoryEnumerator
from recursebuster.errors import RecurseBusterError
from recursebuster.utils.output_utils import format_result, write_to_output, export_jsonl
from recursebuster.utils.wordlist_utils import load_wordlist, load_blacklist, load_body, load_url_list


def build_parser():
    env = load_env_defaults()
    parser = argparse.ArgumentParser(description="Recursive web content discovery with soft-404 detection",
                                     formatter_class=argparse.RawTextHelpFormatter)
    target = parser.add_mutually_exclusive_group(required=True)
    target.add_argument("-u", "--url", help="Target root URL (e.g., http://example.com/)")
    target.add_argument("--input-list", help="File with one target URL per line.")
    parser.add_argument("-w", "--wordlist", required=True, help="Path to wordlist.")
    parser.add_argument("-o", "--output", default="busted.txt", help="Output file for hits (default: busted.txt).")
    parser.add_argument("--jsonl", help="Also export every result as JSON lines to this file.")
    parser.add_argument("-t", "--threads", type=int, default=5, help="Number of concurrent workers (default: 5).")
    parser.add_argument("--timeout", type=float, default=20, help="Request timeout in seconds (default: 20).")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable verbose logging (display debug messages).")

    req = parser.add_argument_group("requests")
    req.add_argument("--methods", default="GET", help="Comma separated methods from GET,POST,HEAD (default: GET).")
    req.add_argument("--no-get", action="store_true", help="Do not send GET requests.")
    req.add_argument("--no-head", action="store_true", help="Do not send HEAD requests.")
    req.add_argument("-H", "--header", action="append", default=[], dest="headers",
                     help="Extra request header 'Name: value' (repeatable).")
    req.add_argument("--cookies", default="", help="Cookies to send, e.g. 'session=abc; user=admin'.")
    req.add_argument("--auth", default="", help="Base64 token for HTTP basic auth.")
    req.add_argument("--ajax", action="store_true", help="Send X-Requested-With: XMLHttpRequest.")
    req.add_argument("--body", help="File whose content is sent as the POST body.")
    req.add_argument("--agent", default=env.get('agent', ''), help="User agent (default: random per session).")
    req.add_argument("--proxy", default=env.get('proxy_addr', ''), dest="proxy_addr",
                     help="Proxy URL, also read from RECURSEBUSTER_PROXY.")
    req.add_argument("--https", action="store_true", help="Use https:// for targets given without a scheme.")
    req.add_argument("-k", "--ssl-ignore", action="store_true", help="Do not verify TLS certificates.")
    req.add_argument("--follow-redirects", action="store_true", help="Follow redirects instead of reporting them.")

    disc = parser.add_argument_group("discovery")
    disc.add_argument("-x", "--extensions", default="", help="Comma separated extensions to append to words.")
    disc.add_argument("--append-dir", action="store_true", help="Also request word/ for every word.")
    disc.add_argument("--no-recursion", action="store_true", help="Do not enumerate discovered directories.")
    disc.add_argument("--max-depth", type=int, default=0, help="Maximum recursion depth (0 for unbounded).")
    disc.add_argument("--no-base", action="store_true", help="Do not request the directory itself.")
    disc.add_argument("--no-spider", action="store_true", help="Accepted for compatibility, has no effect.")
    disc.add_argument("--blacklist", default="", dest="blacklist_location",
                      help="File of URLs that must never be requested.")
    disc.add_argument("--max-queue", type=int, default=10000, help="Dispatch queue bound (default: 10000).")

    filt = parser.add_argument_group("filtering")
    filt.add_argument("--bad", default="404", dest="bad_responses",
                      help="Status codes that are never hits, e.g. '404,500-599' (default: 404).")
    filt.add_argument("--bad-header", action="append", default=[], dest="bad_headers",
                      help="Response header 'Name: value' that marks a response as noise (repeatable).")
    filt.add_argument("--no-wildcard", action="store_true", dest="no_wildcard_checks",
                      help="Skip canary baselines, classify by status only.")
    filt.add_argument("--canary", default="", help="Fixed canary token (default: random per run).")
    filt.add_argument("--ratio", type=float, default=0.95, dest="ratio_404",
                      help="Similarity at or above which a response matches the baseline (default: 0.95).")
    filt.add_argument("--show-all", action="store_true", help="Also report noise.")
    filt.add_argument("--len", action="store_true", dest="show_len", help="Show response length.")
    filt.add_argument("--no-status", action="store_true", help="Do not show status codes.")
    return parser


def config_from_args(args, body_content=''):
    return Config(
        url=args.url or '', threads=args.threads, timeout=args.timeout, methods=args.methods,
        no_get=args.no_get, no_head=args.no_head, no_recursion=args.no_recursion,
        no_spider=args.no_spider, no_base=args.no_base, no_wildcard_checks=args.no_wildcard_checks,
        append_dir=args.append_dir, extensions=args.extensions, bad_responses=args.bad_responses,
        bad_headers=tuple(args.bad_headers), headers=tuple(args.headers), cookies=args.cookies,
        auth=args.auth, ajax=args.ajax, body_content=body_content, canary=args.canary,
        ratio_404=args.ratio_404, show_all=args.show_all, blacklist_location=args.blacklist_location,
        https=args.https, ssl_ignore=args.ssl_ignore, proxy_addr=args.proxy_addr,
        follow_redirects=args.follow_redirects, agent=args.agent, max_depth=args.max_depth,
        max_queue=args.max_queue, output_path=args.output, show_len=args.show_len,
        no_status=args.no_status, verbose=args.verbose,
    )


def main(argv=None):
    args = build_parser().parse_args(argv)

    if args.verbose:
        logger.setLevel(logging.DEBUG)
    else:
        logger.setLevel(logging.INFO)

    try:
        config = config_from_args(args, load_body(args.body))
        wordlist = load_wordlist(args.wordlist)
        blacklist = load_blacklist(config.blacklist_location)
        urls = load_url_list(args.input_list) if args.input_list else [config.url]
        enumerator = DirectoryEnumerator(config, wordlist, blacklist=blacklist)
    except RecurseBusterError as e:
        logger.error(f" [!] {e}")
        return 1

    def on_result(result):
        line = format_result(result, config.show_len, config.no_status)
        print(line, flush=True)
        write_to_output(config.output_path, result, config.show_len, config.no_status)

    enumerator.consume(on_result=on_result)
    try:
        results = enumerator.run(urls)
    except RecurseBusterError as e:
        logger.error(f" [!] {e}")
        return 1
    except KeyboardInterrupt:
        logger.warning(" [!] Interrupted, stopping.")
        return 130

    if args.jsonl:
        export_jsonl(args.jsonl, results)
    logger.info(f"[*] Results written to {config.output_path}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
