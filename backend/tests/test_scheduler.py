from cubetag.services.game.scheduler import SweepScheduler


def test_scheduler_stays_off_in_tests(flask_app):
    scheduler = flask_app.extensions['cubetag_scheduler']
    assert scheduler.start() is False


def test_run_once_logs_and_survives_errors(flask_app, authority, caplog):
    scheduler = SweepScheduler(flask_app, authority)

    def _boom():
        raise RuntimeError('sweep exploded')

    scheduler.run_once('stats', _boom)
    assert 'sweep failed' in caplog.text


def test_run_once_drives_afk_sweep(flask_app, authority, emitter):
    authority.join('a', now=0.0)
    authority.join('b', now=0.0)
    scheduler = SweepScheduler(flask_app, authority)
    scheduler.run_once('afk', lambda: authority.sweep_idle_holder(now=30.0))
    assert emitter.to('a', 'forced_to_lobby')[0][1] == {'reason': 'afk'}
