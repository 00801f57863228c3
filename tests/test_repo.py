import pytest
from groot.config import RepositoryConfig
from groot.diff import DiffKind, DiffOp
from groot.errors import (
    CorruptError, EmptyCommitError, MissingFileError, NotFoundError, NotInitializedError, StorageError,
)
from groot.index import StagingEntry
from groot.repo import Repository

@pytest.fixture
def repo(tmp_path):
    r = Repository(tmp_path, config=RepositoryConfig(fsync=False, lock_timeout=1.0))
    r.init()
    return r

def write(repo, name, text):
    p = repo.workdir/name
    p.parent.mkdir(parents=True, exist_ok=True)
    p.write_text(text)
    return name

def test_init_layout_and_idempotence(tmp_path):
    r = Repository(tmp_path)
    assert not r.is_initialized()
    res = r.init()
    assert res.already_initialized is False
    g = tmp_path/'.groot'
    assert (g/'objects').is_dir()
    assert (g/'HEAD').read_text() == ''
    assert (g/'index').exists()
    assert (g/'config').exists()
    assert r.init().already_initialized is True

def test_init_keeps_existing_state(repo):
    write(repo, 'a.txt', 'a')
    repo.add('a.txt')
    oid = repo.commit('c').digest
    repo.add('a.txt')
    assert Repository(repo.workdir).init().already_initialized is True
    assert repo.head() == oid
    assert [e.path for e in repo.status().staged] == ['a.txt']

def test_operations_need_init(tmp_path):
    r = Repository(tmp_path)
    with pytest.raises(NotInitializedError):
        r.add('x')
    with pytest.raises(NotFoundError):
        r.log()
    assert not (tmp_path/'.groot').exists()

def test_add_returns_digest_and_stages(repo):
    write(repo, 'dir/a.txt', 'hello\n')
    res = repo.add('dir/a.txt')
    assert res.path == 'dir/a.txt'
    assert repo.objects.get(res.digest) == b'hello\n'
    assert repo.status().staged == [StagingEntry('dir/a.txt', res.digest)]

def test_add_absolute_path(repo):
    write(repo, 'a.txt', 'x')
    assert repo.add(str(repo.workdir/'a.txt')).path == 'a.txt'

def test_add_errors(repo, tmp_path_factory):
    with pytest.raises(MissingFileError):
        repo.add('nope.txt')
    (repo.workdir/'sub').mkdir()
    with pytest.raises(StorageError):
        repo.add('sub')
    with pytest.raises(MissingFileError):
        repo.add('.groot/HEAD')
    outside = tmp_path_factory.mktemp('elsewhere')/'f.txt'
    outside.write_text('x')
    with pytest.raises(MissingFileError):
        repo.add(str(outside))

def test_commit_files_in_staging_order(repo):
    d1 = repo.add(write(repo, 'a.txt', 'a')).digest
    d2 = repo.add(write(repo, 'b.txt', 'b')).digest
    oid = repo.commit('two files').digest
    assert repo.graph.get(oid).files == (StagingEntry('a.txt', d1), StagingEntry('b.txt', d2))
    assert repo.status() == (oid, [])

def test_restaging_keeps_one_entry_with_later_digest(repo):
    repo.add(write(repo, 'a.txt', 'old'))
    repo.add(write(repo, 'b.txt', 'b'))
    later = repo.add(write(repo, 'a.txt', 'new')).digest
    oid = repo.commit('c').digest
    files = repo.graph.get(oid).files
    assert [e.path for e in files] == ['a.txt', 'b.txt']
    assert files[0].digest == later

def test_empty_commit(repo):
    with pytest.raises(EmptyCommitError):
        repo.commit('nothing')
    assert repo.head() is None
    assert repo.status().staged == []

def test_log_newest_first(repo):
    oids = []
    for i in range(3):
        repo.add(write(repo, 'f.txt', str(i)))
        oids.append(repo.commit(f'm{i}', timestamp=f'2024-05-0{i + 1}T00:00:00+00:00').digest)
    entries = list(repo.log())
    assert [e.digest for e in entries] == oids[::-1]
    assert [e.message for e in entries] == ['m2', 'm1', 'm0']
    assert entries[0].timestamp == '2024-05-03T00:00:00+00:00'

def test_log_empty(repo):
    assert list(repo.log()) == []

def test_show_root_commit_reports_new_files(repo):
    repo.add(write(repo, 'a.txt', 'a\n'))
    oid = repo.commit('root').digest
    res = repo.show(oid)
    assert res.parent is None
    assert res.message == 'root'
    assert [(f.path, f.content, f.diff) for f in res.files] == [('a.txt', 'a\n', None)]

def test_show_diffs_against_parent(repo):
    repo.add(write(repo, 'a.txt', 'a\nb\nc\n'))
    first = repo.commit('one').digest
    repo.add(write(repo, 'a.txt', 'a\nx\nc\n'))
    repo.add(write(repo, 'new.txt', 'fresh\n'))
    second = repo.commit('two').digest
    res = repo.show(second)
    assert res.parent == first
    by_path = {f.path: f for f in res.files}
    assert by_path['a.txt'].content == 'a\nx\nc\n'
    assert by_path['a.txt'].diff == [
        DiffOp(DiffKind.UNCHANGED, 'a\n'),
        DiffOp(DiffKind.REMOVED, 'b\n'),
        DiffOp(DiffKind.ADDED, 'x\n'),
        DiffOp(DiffKind.UNCHANGED, 'c\n'),
    ]
    assert by_path['new.txt'].diff is None

def test_show_unchanged_file(repo):
    repo.add(write(repo, 'a.txt', 'same\n'))
    repo.commit('one')
    repo.add('a.txt')
    oid = repo.commit('two').digest
    assert repo.show(oid).files[0].diff == [DiffOp(DiffKind.UNCHANGED, 'same\n')]

def test_show_unknown_digest(repo):
    with pytest.raises(NotFoundError):
        repo.show('e' * 64)
    with pytest.raises(NotFoundError):
        repo.show('not-a-digest')

def test_show_missing_blob_is_corrupt(repo):
    d = repo.add(write(repo, 'a.txt', 'a')).digest
    oid = repo.commit('c').digest
    (repo.groot_dir/'objects'/d).unlink()
    with pytest.raises(CorruptError):
        repo.show(oid)

def test_show_decodes_binary_with_replacement(repo):
    (repo.workdir/'bin').write_bytes(b'\xff\xfe ok')
    repo.add('bin')
    oid = repo.commit('binary').digest
    assert repo.show(oid).files[0].content.endswith(' ok')

def test_reset_unstages(repo):
    repo.add(write(repo, 'a.txt', 'a'))
    assert repo.reset('a.txt') is True
    assert repo.reset('a.txt') is False
    with pytest.raises(EmptyCommitError):
        repo.commit('c')

def test_set_config_persists(repo):
    repo.set_config('lock_timeout', '3')
    assert Repository(repo.workdir).get_config().lock_timeout == 3.0
