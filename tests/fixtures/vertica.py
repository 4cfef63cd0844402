import logging
import pathlib
import sys
import time

import pytest
import verticadb as db
from testcontainers.core.container import DockerContainer

HERE = pathlib.Path(pathlib.Path(__file__).resolve()).parent
sys.path.insert(0, str(HERE.parent))
import config

logger = logging.getLogger(__name__)

VERTICA_IMAGE = 'vertica/vertica-ce:latest'
STARTUP_TIMEOUT = 600


def _wait_for_vertica(timeout=STARTUP_TIMEOUT):
    deadline = time.time() + timeout
    while True:
        try:
            cn = db.connect(**vars(config.vertica))
        except db.DatabaseConnectionError as exc:
            if time.time() > deadline:
                raise
            logger.debug(f'Vertica not ready yet: {exc}')
            time.sleep(5)
            continue
        cn.close()
        return


@pytest.fixture(scope='session')
def vertica_docker(request):
    """Session-scoped Vertica CE container using testcontainers.

    Skips the requesting tests when Docker is not available.
    """
    container = DockerContainer(VERTICA_IMAGE).with_exposed_ports(5433)
    try:
        container.start()
    except Exception as e:
        pytest.skip(f'Docker is not available: {e}')

    def finalizer():
        container.stop()
        logger.info('Vertica container stopped')

    request.addfinalizer(finalizer)

    config.vertica.hostname = container.get_container_host_ip()
    config.vertica.port = int(container.get_exposed_port(5433))
    logger.info(f'Vertica container started at {config.vertica.hostname}:{config.vertica.port}')

    _wait_for_vertica()
    return container


@pytest.fixture
def vconn(vertica_docker):
    """Function-scoped connection; drops the test tables afterwards."""
    cn = db.connect(**vars(config.vertica))
    try:
        yield cn
    finally:
        for table in ('items', 'MixedCase', 'copy_items', 'typed_items'):
            db.drop_table(cn, table, if_exists=True)
        cn.close()
