"""shortform — frame-indexed composition of short-form vertical videos.

A base clip is layered with a hook card, numbered value steps, a call to
action, beat-synced b-roll punch-ins and word-by-word captions. The
timeline engine answers one question: which layers are active at frame N,
and with what animation parameters. Rendering consumes that answer.
"""
