import unittest
from datetime import timedelta

from gavel.core.async_service import (
    AsyncService,
    ServiceLifecycleState,
    ServiceStartError,
    ServiceStopError,
    ServiceExceptionGroup,
)
from tests.test_support import GavelIsolatedAsyncioTestCase


class Foo(AsyncService):
    def __init__(
        self,
        start_err: Exception | None = None,
        stop_err: Exception | None = None,
    ):
        super().__init__()
        self.start_err = start_err
        self.stop_err = stop_err
        self.start_count = 0
        self.stop_count = 0

    async def _start(self):
        self.start_count += 1
        if self.start_err:
            raise self.start_err

    async def _stop(self):
        self.stop_count += 1
        if self.stop_err:
            raise self.stop_err


class AsyncServiceTestCase(GavelIsolatedAsyncioTestCase):
    async def test_service_lifecycle(self):
        logger = self.get_logger("test_service_lifecycle")

        foo = Foo()
        self.assertEqual(ServiceLifecycleState.NEW, foo.state)
        self.assertEqual("Foo", foo.name)

        await foo.start()
        await foo.await_running(timeout=timedelta(seconds=1))
        self.assertEqual(ServiceLifecycleState.RUNNING, foo.state)
        self.assertTrue(foo.running)

        with self.subTest("starting a running service is a noop"):
            await foo.start()
            self.assertEqual(1, foo.start_count)

        await foo.stop()
        await foo.await_stopped(timeout=timedelta(seconds=1))
        self.assertEqual(ServiceLifecycleState.STOPPED, foo.state)
        self.assertTrue(foo.stopped)

        with self.subTest("stopping a stopped service is a noop"):
            await foo.stop()
            self.assertEqual(1, foo.stop_count)

        with self.subTest("stopped service can be restarted"):
            await foo.start()
            await foo.await_running()
            self.assertEqual(ServiceLifecycleState.RUNNING, foo.state)

        with self.subTest("running service can be restarted"):
            await foo.restart()
            await foo.await_running()
            self.assertEqual(ServiceLifecycleState.RUNNING, foo.state)
            self.assertEqual(3, foo.start_count)

        with self.subTest("a new service that is stopped is never started"):
            foo = Foo()
            await foo.stop()
            self.assertTrue(foo.stopped)
            self.assertEqual(0, foo.stop_count)

        with self.subTest("when service fails to start, ServiceStartError is raised"):
            foo = Foo(start_err=Exception("BOOM!"))
            with self.assertRaises(ServiceStartError) as err:
                await foo.start()
            logger.error(err.exception)
            self.assertTrue(foo.stopped)
            self.assertEqual(1, foo.stop_count)
            self.assertIn("BOOM!", str(err.exception.__cause__))

        with self.subTest("when service fails to stop, ServiceStopError is raised"):
            foo = Foo(stop_err=Exception("BOOM!"))
            await foo.start()
            await foo.await_running()

            with self.assertRaises(ServiceStopError) as err:
                await foo.stop()
            logger.error(err.exception)
            self.assertTrue(foo.stopped)

        with self.subTest(
            "when service fails to start, and then an error is raised while stopping"
        ):
            foo = Foo(
                start_err=Exception("BOOM!"),
                stop_err=Exception("BOOM!!"),
            )
            with self.assertRaises(ServiceExceptionGroup) as err:
                await foo.start()
            logger.error(err.exception)
            self.assertEqual(2, len(err.exception.exceptions))
            self.assertIsInstance(err.exception.exceptions[0], ServiceStartError)
            self.assertIsInstance(err.exception.exceptions[1], ServiceStopError)
            self.assertTrue(foo.stopped)


if __name__ == "__main__":
    unittest.main()
