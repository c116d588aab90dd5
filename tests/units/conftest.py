"""Shared IR programs for points-to analysis tests."""

from types import SimpleNamespace

import pytest

from aliasflow.ir.builder import IRBuilder


@pytest.fixture
def copy_program():
    """Pointer copied through a stack slot.

        %x = alloca i32*
        %p = alloca i32**
        store %x, %p
        %q = load %p
        %c = copy %q
        ret
    """
    b = IRBuilder("copy")
    main = b.function("main", return_type="void")
    b.block("entry")
    x = b.alloca("x", "i32*")
    p = b.alloca("p", "i32**")
    store = b.store(x, p)
    q = b.load("q", "i32*", p)
    c = b.copy("c", "i32*", q)
    ret = b.ret()
    return SimpleNamespace(module=b.module, main=main, x=x, p=p, store=store, q=q, c=c, ret=ret)


@pytest.fixture
def kill_program():
    """Two stores through the same single-target pointer."""
    b = IRBuilder("kill")
    b.function("main")
    b.block("entry")
    x = b.alloca("x", "i32*")
    y = b.alloca("y", "i32*")
    p = b.alloca("p", "i32**")
    first = b.store(x, p)
    second = b.store(y, p)
    ret = b.ret()
    return SimpleNamespace(module=b.module, x=x, y=y, p=p, first=first, second=second, ret=ret)


@pytest.fixture
def branch_program():
    """Store through a pointer whose target depends on the branch taken.

    ``%t`` holds either ``%a`` or ``%b``; the store through ``%p`` at the join
    point cannot tell which slot it writes.
    """
    b = IRBuilder("branch")
    b.function("main")
    b.block("entry")
    a = b.alloca("a", "i32**")
    slot_b = b.alloca("b", "i32**")
    t = b.alloca("t", "i32***")
    v = b.alloca("v", "i32*")
    w = b.alloca("w", "i32*")
    init = b.store(w, a)
    b.br("left", "right")
    b.block("left")
    b.store(a, t)
    b.br("join")
    b.block("right")
    b.store(slot_b, t)
    b.br("join")
    b.block("join")
    p = b.load("p", "i32**", t)
    weak = b.store(v, p)
    ret = b.ret()
    return SimpleNamespace(module=b.module, a=a, b=slot_b, t=t, v=v, w=w, init=init,
                           p=p, weak=weak, ret=ret)


@pytest.fixture
def struct_program():
    """Distinct fields of one stack object."""
    b = IRBuilder("struct")
    b.function("main")
    b.block("entry")
    s = b.alloca("s", "%struct.S*")
    x = b.alloca("x", "i32*")
    f1 = b.field("f1", "i32**", s, [0, 1])
    f2 = b.field("f2", "i32**", s, [0, 2])
    store = b.store(x, f1)
    other = b.load("g", "i32*", f2)
    same = b.load("h", "i32*", f1)
    ret = b.ret()
    return SimpleNamespace(module=b.module, s=s, x=x, f1=f1, f2=f2, store=store,
                           other=other, same=same, ret=ret)


@pytest.fixture
def call_program():
    """Caller passes a stack address to an identity function.

    ``main`` is defined before ``id`` so the callee is first analyzed after
    the call site has already pushed facts into it.
    """
    b = IRBuilder("call")
    main = b.function("main", return_type="i32")
    b.block("entry")
    a = b.alloca("a", "i32*")
    call = b.call("id", [a], name="r", type_name="i32*")
    use = b.copy("u", "i32*", call)
    main_ret = b.ret(b.const(0))
    callee = b.function("id", [("p", "i32*")], return_type="i32*")
    b.block("entry")
    body = b.copy("y", "i32*", callee.arguments[0])
    callee_ret = b.ret(callee.arguments[0])
    return SimpleNamespace(module=b.module, main=main, callee=callee, a=a, call=call, use=use,
                           main_ret=main_ret, param=callee.arguments[0], body=body,
                           callee_ret=callee_ret)


@pytest.fixture
def global_leak_program():
    """Callee stores its parameter into a global.

        @g = global i32* null
        define void @set(i32* %q) { store %q, @g; ret }
        define void @main() { %a = alloca i32*; call @set(%a); ret }
    """
    b = IRBuilder("leak")
    g = b.global_variable("g", "i32*")
    setter = b.function("set", [("q", "i32*")])
    b.block("entry")
    store = b.store(setter.arguments[0], g)
    set_ret = b.ret()
    b.function("main")
    b.block("entry")
    a = b.alloca("a", "i32*")
    call = b.call("set", [a])
    main_ret = b.ret()
    return SimpleNamespace(module=b.module, g=g, setter=setter, q=setter.arguments[0],
                           store=store, set_ret=set_ret, a=a, call=call, main_ret=main_ret)


@pytest.fixture
def global_init_program():
    """Global initialized with the address of another global, read in main."""
    b = IRBuilder("globals")
    x = b.global_variable("x", "i32")
    gp = b.global_variable("gp", "i32*", initializer=x)
    b.global_variable("counter", "i32", initializer=b.const(0))
    b.function("main")
    b.block("entry")
    v = b.load("v", "i32*", gp)
    ret = b.ret()
    return SimpleNamespace(module=b.module, x=x, gp=gp, v=v, ret=ret)


@pytest.fixture
def list_walk_program():
    """Loop that keeps taking the address of the next field.

    Every iteration creates a deeper field path, so termination relies on
    field paths collapsing at the configured depth.
    """
    b = IRBuilder("walk")
    b.function("main")
    b.block("entry")
    obj = b.alloca("obj", "%node*")
    cur = b.alloca("cur", "%node**")
    b.store(obj, cur)
    b.br("loop")
    b.block("loop")
    c = b.load("c", "%node*", cur)
    nxt = b.field("next", "%node*", c, [0, 1])
    b.store(nxt, cur)
    b.br("loop", "exit")
    b.block("exit")
    ret = b.ret()
    return SimpleNamespace(module=b.module, obj=obj, cur=cur, c=c, next=nxt, ret=ret)


@pytest.fixture
def external_calls_program():
    """Calls that the analysis does not descend into."""
    b = IRBuilder("external")
    b.declare("malloc", [("n", "i64")], return_type="i8*")
    b.declare("getenv", [("name", "i8*")], return_type="i8*")
    b.declare("llvm.memcpy", [("d", "i8*"), ("s", "i8*")])
    b.function("fatal", [("p", "i32*")], return_type="i32*", noreturn=True)
    b.block("entry")
    b.ret(b.null("i32*"))
    identity = b.function("id", [("p", "i32*")], return_type="i32*")
    b.block("entry")
    id_ret = b.ret(identity.arguments[0])
    b.function("main")
    b.block("entry")
    a = b.alloca("a", "i32*")
    heap = b.call("malloc", [b.const(8, "i64")], name="h", type_name="i8*")
    env = b.call("getenv", [heap], name="e", type_name="i8*")
    indirect = b.call(None, [a], name="i", type_name="i32*")
    diverging = b.call("id", [a], name="d", type_name="i32*", noreturn=True)
    never = b.call("fatal", [a], name="f", type_name="i32*")
    intrinsic = b.call("llvm.memcpy", [heap, env])
    ret = b.ret()
    return SimpleNamespace(module=b.module, a=a, heap=heap, env=env, indirect=indirect,
                           diverging=diverging, never=never, intrinsic=intrinsic,
                           id_ret=id_ret, ret=ret)


@pytest.fixture
def annotated_program():
    """Alias annotations with known expected relations.

        %a, %b = alloca; %p = copy %a
        MAYALIAS(%p, %a)   must predicted, may expected   -> exact
        NOALIAS(%a, %b)    no predicted, no expected      -> exact
        MUSTALIAS(%p, %a)  must predicted, must expected  -> exact
        NOALIAS(%p, %a)    must predicted, no expected    -> imprecise
        MAYALIAS(%a, %b)   no predicted, may expected     -> unsound
    """
    b = IRBuilder("bench")
    b.function("main")
    b.block("entry")
    a = b.alloca("a", "i32*")
    slot_b = b.alloca("b", "i32*")
    p = b.copy("p", "i32*", a)
    annotations = [
        b.call("MAYALIAS", [p, a]),
        b.call("NOALIAS", [a, slot_b]),
        b.call("MUSTALIAS", [p, a]),
        b.call("NOALIAS", [p, a]),
        b.call("MAYALIAS", [a, slot_b]),
    ]
    ret = b.ret()
    return SimpleNamespace(module=b.module, a=a, b=slot_b, p=p, annotations=annotations, ret=ret)


@pytest.fixture
def global_alias_program():
    """A pointer copied from a global's address.

        @g = global i32*
        %p = copy @g
        MUSTALIAS(@g, %p)
    """
    b = IRBuilder("global_alias")
    g = b.global_variable("g", "i32*")
    b.function("main")
    b.block("entry")
    p = b.copy("p", "i32**", g)
    annotation = b.call("MUSTALIAS", [g, p])
    ret = b.ret()
    return SimpleNamespace(module=b.module, g=g, p=p, annotation=annotation, ret=ret)
