import inspect, functools

def cached_property(fn):
    '''
    Used to decorate a function that should be a @property
    but also be cached. Unlike functools.cached_property, this
    keeps the read-only semantics of @property.
    '''
    spec = inspect.getfullargspec(fn)
    assert spec.args == ['self']
    assert len(spec.kwonlyargs) == 0
    assert spec.varargs is None
    assert spec.varkw is None

    key = '_cached_'+fn.__name__
    @property
    @functools.wraps(fn)
    def wrapped(self):
        if not hasattr(self, key):
            setattr(self, key, fn(self))
        return getattr(self, key)
    return wrapped

def method_cache(fn):
    '''
    Caches method results on the object itself rather than in a
    module-level lru_cache, so the cache dies with the object.
    Arguments must be hashable.
    '''
    cache_attr = '_cache_'+fn.__name__
    @functools.wraps(fn)
    def wrapped(self, *args, **kwargs):
        if not hasattr(self, cache_attr):
            setattr(self, cache_attr, {})
        cache = getattr(self, cache_attr)
        key = (args, frozenset(kwargs.items()) if kwargs else None)
        if key not in cache:
            cache[key] = fn(self, *args, **kwargs)
        return cache[key]
    return wrapped
