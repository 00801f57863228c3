"""Command-line interface for groot"""
import argparse
import logging
import sys

from .diff import DiffKind, stats
from .errors import GrootError
from .repo import Repository


def _print_block(prefix: str, text: str):
    for line in text.splitlines():
        print(prefix + line)


def render_show(result):
    print('commit', result.digest)
    if result.parent:
        print('Parent:', result.parent)
    print('Date:', result.timestamp)
    print('\n    ' + result.message + '\n')
    for f in result.files:
        print('--- file', f.path)
        if f.diff is None:
            print('(new file)')
            _print_block('+ ', f.content)
            continue
        added, removed = stats(f.diff)
        print(f'({added} added, {removed} removed)')
        for op in f.diff:
            if op.kind is DiffKind.ADDED:
                _print_block('+ ', op.lines)
            elif op.kind is DiffKind.REMOVED:
                _print_block('- ', op.lines)
            else:
                _print_block('  ', op.lines)


def build_parser():
    parser = argparse.ArgumentParser(prog='groot', description='minimal content-addressed version control')
    parser.add_argument('-C', dest='workdir', default='.', help='run as if started in this directory')
    parser.add_argument('-v', '--verbose', action='store_true')
    sub = parser.add_subparsers(dest='cmd')

    sub.add_parser('init')
    sub.add_parser('status')
    sub.add_parser('log')

    p_add = sub.add_parser('add'); p_add.add_argument('paths', nargs='+')
    p_commit = sub.add_parser('commit'); p_commit.add_argument('message', nargs='?'); p_commit.add_argument('-m', '--message', dest='message_opt')
    p_show = sub.add_parser('show'); p_show.add_argument('digest')
    p_reset = sub.add_parser('reset'); p_reset.add_argument('path')
    p_config = sub.add_parser('config'); p_config.add_argument('key'); p_config.add_argument('value', nargs='?')
    return parser


def run(args, repo: Repository) -> int:
    if args.cmd == 'init':
        res = repo.init()
        if res.already_initialized:
            print('Already initialised', res.path)
        else:
            print('Initialised empty groot repository in', res.path)
        return 0
    if args.cmd == 'add':
        for path in args.paths:
            res = repo.add(path)
            print(res.digest, res.path)
        return 0
    if args.cmd == 'commit':
        message = args.message_opt if args.message_opt is not None else args.message
        if message is None:
            print('error: a commit message is required', file=sys.stderr)
            return 2
        res = repo.commit(message)
        print('Committed', res.digest)
        return 0
    if args.cmd == 'log':
        for entry in repo.log():
            print('commit', entry.digest)
            print('Date:', entry.timestamp)
            print('\n    ' + entry.message + '\n')
        return 0
    if args.cmd == 'show':
        render_show(repo.show(args.digest)); return 0
    if args.cmd == 'status':
        st = repo.status()
        print('HEAD ->', st.head or '(no commits)')
        if st.staged:
            print('Staged files:')
            for e in st.staged:
                print('  ', e.path, e.digest[:12])
        else:
            print('No files staged.')
        return 0
    if args.cmd == 'reset':
        if repo.reset(args.path):
            print('Unstaged', args.path)
        else:
            print(args.path, 'was not staged')
        return 0
    if args.cmd == 'config':
        if args.value is None:
            value = repo.get_config().get(args.key)
            if value is None:
                print(f'error: {args.key} is not set', file=sys.stderr)
                return 1
            print(value)
        else:
            repo.set_config(args.key, args.value)
        return 0
    return 2


def main(argv=None):
    argv = sys.argv[1:] if argv is None else argv
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format='%(levelname)s %(name)s: %(message)s',
    )
    if not args.cmd:
        parser.print_help(); return 2
    repo = Repository(args.workdir)
    try:
        return run(args, repo)
    except GrootError as exc:
        print(f'error: {exc}', file=sys.stderr)
        return exc.exit_code


if __name__ == '__main__':
    raise SystemExit(main())
