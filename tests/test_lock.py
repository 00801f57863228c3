import threading
import time
import pytest
from groot.config import RepositoryConfig
from groot.errors import LockedError
from groot.lock import RepositoryLock
from groot.repo import Repository

def test_second_holder_times_out(tmp_path):
    lock_file = tmp_path/'lock'
    outer = RepositoryLock(lock_file, timeout=1.0)
    inner = RepositoryLock(lock_file, timeout=0.1, poll_interval=0.01)
    with outer.hold():
        start = time.monotonic()
        with pytest.raises(LockedError):
            with inner.hold():
                pass
        assert time.monotonic() - start < 1.0
    with inner.hold():
        pass

def test_released_after_exception(tmp_path):
    lock = RepositoryLock(tmp_path/'lock', timeout=0.1, poll_interval=0.01)
    with pytest.raises(RuntimeError):
        with lock.hold():
            raise RuntimeError('boom')
    with lock.hold():
        pass

def test_waiter_gets_lock_once_released(tmp_path):
    lock_file = tmp_path/'lock'
    holder = RepositoryLock(lock_file)
    acquired = []
    release = threading.Event()
    started = threading.Event()

    def hold():
        with holder.hold():
            started.set()
            release.wait(5)

    t = threading.Thread(target=hold)
    t.start()
    started.wait(5)
    waiter = RepositoryLock(lock_file, timeout=5.0, poll_interval=0.01)
    threading.Timer(0.1, release.set).start()
    with waiter.hold():
        acquired.append(True)
    t.join(5)
    assert acquired == [True]

def test_locked_repository_rejects_add_and_commit(tmp_path):
    repo = Repository(tmp_path, config=RepositoryConfig(fsync=False, lock_timeout=0.1, lock_poll_interval=0.01))
    repo.init()
    (tmp_path/'a.txt').write_text('a')
    with RepositoryLock(repo.groot_dir/'lock').hold():
        with pytest.raises(LockedError):
            repo.add('a.txt')
    repo.add('a.txt')
    with RepositoryLock(repo.groot_dir/'lock').hold():
        with pytest.raises(LockedError):
            repo.commit('c')
    assert repo.head() is None
    assert len(repo.status().staged) == 1

def test_concurrent_adds_keep_every_entry(tmp_path):
    repo_path = tmp_path
    Repository(repo_path).init()
    names = [f'f{i}.txt' for i in range(12)]
    for n in names:
        (repo_path/n).write_text(n)
    errors = []

    def add(name):
        try:
            Repository(repo_path, config=RepositoryConfig(fsync=False)).add(name)
        except Exception as exc:
            errors.append(exc)

    threads = [threading.Thread(target=add, args=(n,)) for n in names]
    for t in threads:
        t.start()
    for t in threads:
        t.join(10)
    assert errors == []
    assert sorted(e.path for e in Repository(repo_path).status().staged) == sorted(names)
