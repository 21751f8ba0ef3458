import pytest

from recursebuster.enumerator import DirectoryEnumerator
from recursebuster.errors import ConfigError
from recursebuster.models import RootState

from conftest import TARGET, FakeTransport, make_config, hit_paths, page_body, not_found_body


def test_enumerator_init():
    enum = DirectoryEnumerator(make_config(), ['a'], transport=FakeTransport())
    assert enum.config.url == TARGET
    assert enum.state.wordlist == ['a']
    assert enum.frontier == {}


def test_recursion_finds_nested_paths_and_skips_soft_404(scan):
    enum = scan(['a', 'b', 'c', 'x'])
    found = hit_paths(enum.results)
    assert {'/a', '/a/b', '/a/b/c'} <= found
    assert '/a/x' not in found
    assert '/x' not in found


def test_recursion_frontier_is_complete(scan):
    enum = scan(['a', 'b', 'c', 'x'])
    frontier = enum.frontier
    for root in ('', 'a/', 'a/b/', 'a/b/c/'):
        assert frontier[TARGET + root] == RootState.COMPLETE


def test_extensions(scan):
    enum = scan(['a'], extensions='csv,exe,aspx', no_recursion=True)
    assert {'/a', '/a.csv', '/a.exe', '/a.aspx'} <= hit_paths(enum.results)


def test_no_get_only_sends_head(scan):
    enum = scan(['getonly', 'headonly'], no_get=True)
    found = hit_paths(enum.results)
    assert '/headonly' in found
    assert '/getonly' not in found
    assert all(method == 'HEAD' for method, _ in enum.transport.calls)


def test_no_head_only_sends_get(scan):
    enum = scan(['getonly', 'headonly'], no_head=True)
    found = hit_paths(enum.results)
    assert '/getonly' in found
    assert '/headonly' not in found
    assert all(method == 'GET' for method, _ in enum.transport.calls)


def test_get_and_head_by_default(scan):
    found = hit_paths(scan(['getonly', 'headonly']).results)
    assert {'/getonly', '/headonly'} <= found


def test_append_dir_reports_slashed_word(scan):
    enum = scan(['appendslash'], append_dir=True)
    found = hit_paths(enum.results)
    assert '/appendslash/' in found
    assert '/appendslash' not in found


def test_no_recursion_frontier_is_initial_root(scan):
    enum = scan(['a', 'b', 'c', 'x'], no_recursion=True)
    assert enum.frontier == {TARGET: RootState.COMPLETE}
    assert not any(path.startswith('/a/') for path in enum.transport.requested_paths())


def test_max_depth_limits_recursion(scan):
    enum = scan(['a', 'b', 'c'], max_depth=1)
    assert set(enum.frontier) == {TARGET, TARGET + 'a/'}


def test_fixed_canary_is_never_a_hit(scan):
    enum = scan(['canarytoken', 'canarytoken2', 'a'], canary='canarytoken', no_recursion=True)
    found = hit_paths(enum.results)
    assert '/canarytoken' not in found
    assert '/canarytoken2' not in found
    assert '/a' in found


def test_bad_response_codes(scan):
    assert '/badcode' in hit_paths(scan(['badcode']).results)
    assert '/badcode' not in hit_paths(scan(['badcode'], bad_responses='404,500').results)


def test_bad_header(scan):
    assert '/badheader' in hit_paths(scan(['badheader']).results)
    enum = scan(['badheader'], bad_headers=('X-Bad-Header: test123',))
    assert '/badheader' not in hit_paths(enum.results)


def test_basic_auth(scan):
    assert '/basicauth' not in hit_paths(scan(['basicauth']).results)
    assert '/basicauth' in hit_paths(scan(['basicauth'], auth='dGVzdDp0ZXN0').results)


def test_cookies(scan):
    assert '/cookiesonly' not in hit_paths(scan(['cookiesonly']).results)
    enum = scan(['cookiesonly'], cookies='lol=ok; cookie2=test')
    assert '/cookiesonly' in hit_paths(enum.results)


def test_custom_headers(scan):
    words = ['customheaderonly', 'onlynocustomheader']
    assert hit_paths(scan(words).results) & set('/' + w for w in words) == {'/onlynocustomheader'}
    enum = scan(words, headers=('X-ATT-DeviceId: XXXXX',))
    assert hit_paths(enum.results) & set('/' + w for w in words) == {'/customheaderonly'}


def test_ajax(scan):
    words = ['ajaxonly', 'onlynoajax', 'ajaxpost']
    found = hit_paths(scan(words).results)
    assert '/onlynoajax' in found
    assert not {'/ajaxonly', '/ajaxpost'} & found

    found = hit_paths(scan(words, ajax=True).results)
    assert '/ajaxonly' in found
    assert not {'/onlynoajax', '/ajaxpost'} & found

    found = hit_paths(scan(words, ajax=True, methods='GET,POST').results)
    assert {'/ajaxonly', '/ajaxpost'} <= found


def test_post_body(scan):
    assert '/postbody' not in hit_paths(scan(['postbody'], methods='POST', no_head=True).results)
    enum = scan(['postbody'], methods='POST', no_head=True, body_content='test=bodycontent')
    assert '/postbody' in hit_paths(enum.results)
    assert all(method == 'POST' for method, _ in enum.transport.calls)


def test_show_all_reports_noise_without_recursing(scan):
    enum = scan(['x', 'a'], show_all=True, no_recursion=True)
    noise = {r.url for r in enum.results if not r.hit}
    assert TARGET + 'x' in noise
    assert TARGET + 'x' not in {r.url for r in enum.results if r.hit}


def test_results_reported_once_per_url(scan):
    enum = scan(['a', 'b'], threads=4)
    urls = [r.url for r in enum.results if r.hit]
    assert len(urls) == len(set(urls))


def test_blacklist_prunes_requests_and_recursion(scan):
    enum = scan(['a', 'b'], blacklist={TARGET + 'a'})
    paths = enum.transport.requested_paths()
    assert not any(path == '/a' or path.startswith('/a/') for path in paths)
    assert TARGET + 'a/' not in enum.frontier
    assert enum.state.stats['skipped'] >= 1


def test_transport_errors_are_local_to_the_job(scan):
    transport = FakeTransport(fail=lambda method, path: path == '/boom')
    enum = scan(['boom', 'a'], transport=transport, no_recursion=True)
    assert '/a' in hit_paths(enum.results)
    assert '/boom' not in hit_paths(enum.results)
    assert enum.state.stats['errors'] >= 1


def test_failed_baseline_falls_back_to_status(scan):
    transport = FakeTransport(fail=lambda method, path: 'canarytoken' in path)
    enum = scan(['a', 'x'], transport=transport, canary='canarytoken', no_recursion=True)
    found = hit_paths(enum.results)
    assert '/a' in found
    assert '/x' not in found
    assert enum.detector.probe_count(TARGET) == 1


def test_redirect_loop_terminates(scan):
    enum = scan(['loop1'])
    found = hit_paths(enum.results)
    assert {'/loop1', '/loop2'} <= found


def test_redirect_to_other_host_is_not_followed(scan):
    enum = scan(['elsewhere'])
    assert all('other.test' not in url for _, url in enum.transport.calls)


def test_redirect_to_directory_respects_no_recursion(scan):
    enum = scan(['b'], no_recursion=True)
    assert '/b' in hit_paths(enum.results)
    assert TARGET + 'a/' not in enum.frontier


def test_redirect_target_is_requested_once(transport):
    # /b/c redirects to /a/b, which is not under any enumerated root
    enum = DirectoryEnumerator(make_config(no_recursion=True), ['c'], transport=transport)
    try:
        enum.start(TARGET + 'b/')
        assert enum.wait(timeout=30)
    finally:
        enum.shutdown()
    assert {'/b/c', '/a/b'} <= hit_paths(enum.results)
    assert set(enum.frontier) == {TARGET + 'b/'}
    assert transport.path_counts()['/a/b'] == 1


def test_baseline_once_per_directory_under_load(scan):
    words = [f"w{i}" for i in range(40)] + ['a', 'b']
    transport = FakeTransport(delay=0.002)
    enum = scan(words, transport=transport, threads=8)
    canary = enum.state.canary
    baselines = [(method, url) for method, url in transport.calls if url.endswith('/' + canary)]
    assert {method for method, _ in baselines} == {'GET', 'HEAD'}
    assert len(baselines) == len(set(baselines))


def test_run_returns_results(transport):
    enum = DirectoryEnumerator(make_config(no_recursion=True), ['a', 'x'], transport=transport)
    results = enum.run(TARGET)
    assert '/a' in hit_paths(results)
    assert enum.state.tracker.pending == 0


def test_start_accepts_bare_host(transport):
    enum = DirectoryEnumerator(make_config(no_recursion=True), ['a'], transport=transport)
    try:
        root = enum.start('target.test')
        assert enum.wait(timeout=30)
    finally:
        enum.shutdown()
    assert root == TARGET


def test_start_rejects_bad_url(transport):
    enum = DirectoryEnumerator(make_config(), ['a'], transport=transport)
    try:
        with pytest.raises(ConfigError):
            enum.start('ftp://target.test/')
    finally:
        enum.shutdown()
    assert transport.calls == []


def test_fixed_canary_reveals_pages_unlike_the_catch_all(scan):
    # /a/<canary> serves the catch-all page, while /a/x and /a/y serve a different not-found page
    enum = scan(['a', 'x', 'y'], canary='canarytoken')
    found = hit_paths(enum.results)
    assert {'/a', '/a/x', '/a/y'} <= found
    assert '/x' not in found
    assert TARGET + 'a/' in enum.frontier


def catch_all(method, path):
    body = page_body('/')
    if method == 'HEAD':
        # chunked: no body and no Content-Length
        return 200, {'Content-Type': 'text/html', 'Transfer-Encoding': 'chunked'}, b''
    return 200, {'Content-Type': 'text/html', 'Content-Length': str(len(body))}, body


def test_wildcard_server_without_head_length_does_not_recurse(scan):
    transport = FakeTransport(handler=catch_all)
    enum = scan(['foo', 'bar'], transport=transport)
    assert enum.frontier == {TARGET: RootState.COMPLETE}
    assert not {'/foo', '/bar', '/foo/', '/bar/'} & hit_paths(enum.results)


def head_not_allowed(method, path):
    if method == 'HEAD':
        return 405, {'Allow': 'GET', 'Content-Length': '0'}, b''
    body = not_found_body(path)
    return 404, {'Content-Length': str(len(body))}, body


def test_head_compared_against_head_baseline(scan):
    transport = FakeTransport(handler=head_not_allowed)
    enum = scan(['foo', 'bar'], transport=transport, no_recursion=True)
    assert hit_paths(enum.results) == set()
    assert transport.calls.count(('HEAD', TARGET + enum.state.canary)) == 1
