greeting = runner.options.get('fixtures.greeting')

test('bootstrap ran first', lambda t: t.is_(greeting).equal('Hello'))

test('nothing asserted', lambda t: None)


def explode(t):
    raise LookupError('no such key')


test('unexpected error', explode)
