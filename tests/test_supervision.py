import asyncio
import io
import sys

from attend.supervision import SubprocessSupervisor, describe_command, forward_streams


class FakeProcess:
    def __init__(self, returncode: int | None = None) -> None:
        self.returncode = returncode
        self.stdout = None
        self.stderr = None
        self._exited = asyncio.Event()
        if returncode is not None:
            self._exited.set()

    async def wait(self) -> int:
        await self._exited.wait()
        assert self.returncode is not None
        return self.returncode

    def exit(self, code: int = 0) -> None:
        self.returncode = code
        self._exited.set()


def test_drained_resolves_immediately_without_processes() -> None:
    async def _run() -> None:
        supervisor = SubprocessSupervisor()
        await asyncio.wait_for(supervisor.drained(), timeout=1)
        assert supervisor.pending == 0

    asyncio.run(_run())


def test_exited_process_is_not_tracked() -> None:
    async def _run() -> bool:
        supervisor = SubprocessSupervisor()
        return supervisor.add(FakeProcess(returncode=0))

    assert asyncio.run(_run()) is False


def test_drained_waits_for_every_process() -> None:
    async def _run() -> list[int | None]:
        supervisor = SubprocessSupervisor()
        processes = [FakeProcess() for _ in range(3)]
        for process in processes:
            assert supervisor.add(process)
        assert supervisor.pending == 3

        waiter = asyncio.ensure_future(supervisor.drained())
        processes[0].exit(0)
        processes[2].exit(1)
        await asyncio.sleep(0.01)
        assert not waiter.done()

        processes[1].exit(0)
        await asyncio.wait_for(waiter, timeout=1)
        assert supervisor.pending == 0
        return [process.returncode for process in processes]

    assert asyncio.run(_run()) == [0, 0, 1]


def test_drained_waits_for_watchers_after_exit() -> None:
    async def _run() -> list[str]:
        supervisor = SubprocessSupervisor()
        order: list[str] = []

        async def reader() -> None:
            await asyncio.sleep(0.02)
            order.append("reader")

        process = FakeProcess()
        supervisor.add(process, [reader()])
        process.exit(0)
        await supervisor.drained()
        order.append("drained")
        return order

    assert asyncio.run(_run()) == ["reader", "drained"]


def test_failing_watcher_does_not_block_drain() -> None:
    async def _run() -> int:
        supervisor = SubprocessSupervisor()

        async def reader() -> None:
            raise OSError("pipe closed")

        supervisor.add(FakeProcess(returncode=0), [reader()])
        await asyncio.wait_for(supervisor.drained(), timeout=1)
        return supervisor.pending

    assert asyncio.run(_run()) == 0


def test_forward_streams_copies_output() -> None:
    target = io.StringIO()

    async def _run() -> int:
        process = await asyncio.create_subprocess_exec(
            sys.executable,
            "-c",
            "import sys; print('out'); print('err', file=sys.stderr)",
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
        outcomes = await asyncio.gather(process.wait(), *forward_streams(process, target))
        return outcomes[0]

    assert asyncio.run(_run()) == 0
    assert "out" in target.getvalue()
    assert "err" in target.getvalue()


def test_describe_command_uses_executable_basename() -> None:
    assert describe_command(["/usr/bin/git", "status", "-s"]) == "git status -s"
    assert describe_command([]) == ""
