from rics_data.object_injection import InjectionKey, Injector


def test_instance_is_shared():
    shared = Injector.instance()
    previous = shared.get(InjectionKey.CONFIG_RICS)
    marker = object()
    shared.insert(InjectionKey.CONFIG_RICS, marker)
    try:
        assert Injector.instance().get(InjectionKey.CONFIG_RICS) is marker
    finally:
        shared.insert(InjectionKey.CONFIG_RICS, previous)


def test_insert_and_get():
    injector = Injector()
    marker = object()
    injector.insert(InjectionKey.TRANSPORT, marker)
    assert injector.get(InjectionKey.TRANSPORT) is marker


def test_insert_replaces_existing():
    injector = Injector()
    injector.insert(InjectionKey.FILE_OP, "old")
    injector.insert(InjectionKey.FILE_OP, "new")
    assert injector.get(InjectionKey.FILE_OP) == "new"


def test_missing_key_gives_none():
    injector = Injector()
    injector.insert(InjectionKey.CACHE_OP, 1)
    assert injector.get(InjectionKey.DATA_REPORT) is None


def test_separate_injectors_do_not_share_objects():
    first = Injector()
    second = Injector()
    first.insert(InjectionKey.CONFIG_RICS, "a")
    assert second.get(InjectionKey.CONFIG_RICS) is None