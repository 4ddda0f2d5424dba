import threading

from ouroboros_spec.locking import ReadWriteLock


def _in_thread(target) -> tuple[threading.Thread, threading.Event]:
    done = threading.Event()

    def run():
        target()
        done.set()

    thread = threading.Thread(target=run, daemon=True)
    thread.start()
    return thread, done


class TestReadWriteLock:
    def test_readers_share(self):
        lock = ReadWriteLock()
        with lock.read_locked():
            _, done = _in_thread(lambda: lock.read_locked().__enter__())
            assert done.wait(2)

    def test_writer_waits_for_reader(self):
        lock = ReadWriteLock()
        lock.acquire_read()

        def write():
            with lock.write_locked():
                pass

        thread, done = _in_thread(write)
        assert not done.wait(0.1)
        lock.release_read()
        assert done.wait(2)
        thread.join(2)

    def test_reader_waits_for_writer(self):
        lock = ReadWriteLock()
        lock.acquire_write()

        def read():
            with lock.read_locked():
                pass

        thread, done = _in_thread(read)
        assert not done.wait(0.1)
        lock.release_write()
        assert done.wait(2)
        thread.join(2)

    def test_released_on_exception(self):
        lock = ReadWriteLock()
        try:
            with lock.write_locked():
                raise ValueError("boom")
        except ValueError:
            pass

        _, done = _in_thread(lambda: lock.acquire_write())
        assert done.wait(2)
